"""Tests for the notification dispatcher and error reporter."""

from unittest.mock import Mock

import pytest

from sheet_notifier.config.environment import EnvironmentConfig
from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.models import EmailConfig
from sheet_notifier.logging.context import log_context
from sheet_notifier.matching.models import RowData, SheetInfo
from sheet_notifier.notifications.models import (
    DispatchError,
    SMTPDeliveryError,
    WebhookDeliveryError,
    WebhookResponse,
)
from sheet_notifier.notifications.renderers import RENDERERS
from sheet_notifier.notifications.service import (
    CHANNELS,
    ERROR_REPORT_SUBJECT,
    ErrorReporter,
    NotificationDispatcher,
    build_render_context,
)
from sheet_notifier.notifications.smtp_client import SMTPClient
from sheet_notifier.notifications.webhook_client import WebhookClient

from tests.helpers.constants import DISCORD_WEBHOOK, SLACK_WEBHOOK

ROWS = [RowData(row_number=5, date="2024/03/02", columns={"D": "Alice"}, row_url="u#range=L5")]
SHEET = SheetInfo(title="Tasks", sheet_url="u#gid=0", column_labels={"D": "担当者"})


@pytest.fixture
def webhook_client():
    client = Mock(spec=WebhookClient)
    client.post.return_value = WebhookResponse(status_code=200, body="ok")
    return client


@pytest.fixture
def smtp_client():
    return Mock(spec=SMTPClient)


@pytest.fixture
def dispatcher(webhook_client, smtp_client, smtp_env_config, clock):
    return NotificationDispatcher(
        webhook_client=webhook_client,
        smtp_client=smtp_client,
        env_config=smtp_env_config,
        clock=clock,
    )


class TestBuildRenderContext:
    def test_slack_mentions(self, make_date_rule):
        rule = make_date_rule(mentions={"slack": {"user_ids": ["U1"], "group_ids": ["S1"]}})

        context = build_render_context(rule, ROWS, SHEET)

        assert context.mention_text == "<@U1> <!subteam^S1>"
        assert context.allowed_mentions is None
        assert context.rule_title == "日付通知"

    def test_discord_mentions(self, make_status_rule):
        rule = make_status_rule("DISCORD", mentions={"discord": {"role_ids": ["42"]}})

        context = build_render_context(rule, ROWS, SHEET)

        assert context.mention_text == "<@&42>"
        assert context.allowed_mentions == {"parse": ["roles"]}
        assert context.rule_title == "ステータス通知"

    def test_email_ignores_mentions(self, make_date_rule):
        rule = make_date_rule("EMAIL", mentions={"slack": {"user_ids": ["U1"]}})

        assert build_render_context(rule, ROWS, SHEET).mention_text == ""

    def test_missing_sheet_info_falls_back_to_sheet_name(self, make_date_rule):
        rule = make_date_rule(sheet_name="請求管理")

        context = build_render_context(rule, ROWS)

        assert context.sheet_info == SheetInfo(title="請求管理")

    def test_title_override(self, make_date_rule):
        rule = make_date_rule(title="設定タイトル")

        assert build_render_context(rule, ROWS, SHEET).rule_title == "設定タイトル"
        assert build_render_context(rule, ROWS, SHEET, rule_title="上書き").rule_title == "上書き"


def test_channel_table():
    assert CHANNELS["SLACK"].success_codes == frozenset({200})
    assert CHANNELS["DISCORD"].success_codes == frozenset({200, 204})
    assert not CHANNELS["EMAIL"].is_webhook
    assert {channel: spec.renderer for channel, spec in CHANNELS.items()} == RENDERERS


class TestDispatchWebhooks:
    def test_slack_success(self, dispatcher, webhook_client, make_date_rule):
        result = dispatcher.dispatch(make_date_rule(), ROWS, SHEET)

        assert result.is_success()
        assert result.status_code == 200
        assert result.row_count == 1
        url, payload = webhook_client.post.call_args[0]
        assert url == SLACK_WEBHOOK
        assert "blocks" in payload and "text" in payload

    def test_discord_accepts_204(self, dispatcher, webhook_client, make_date_rule):
        webhook_client.post.return_value = WebhookResponse(status_code=204)

        result = dispatcher.dispatch(make_date_rule("DISCORD"), ROWS, SHEET)

        assert result.status == "sent"
        assert result.channel == "DISCORD"
        url, payload = webhook_client.post.call_args[0]
        assert url == DISCORD_WEBHOOK
        assert "embeds" in payload

    def test_slack_rejects_204(self, dispatcher, webhook_client, make_date_rule):
        webhook_client.post.return_value = WebhookResponse(status_code=204)

        with pytest.raises(DispatchError) as exc_info:
            dispatcher.dispatch(make_date_rule(), ROWS, SHEET)

        assert exc_info.value.status_code == 204

    def test_error_status_carries_body(self, dispatcher, webhook_client, make_date_rule):
        webhook_client.post.return_value = WebhookResponse(status_code=404, body="no_service")

        with pytest.raises(DispatchError, match="HTTP 404: no_service") as exc_info:
            dispatcher.dispatch(make_date_rule(), ROWS, SHEET)

        assert exc_info.value.channel == "SLACK"
        assert exc_info.value.body == "no_service"

    def test_transport_failure_is_wrapped(self, dispatcher, webhook_client, make_date_rule):
        webhook_client.post.side_effect = WebhookDeliveryError("timed out")

        with pytest.raises(DispatchError, match="timed out") as exc_info:
            dispatcher.dispatch(make_date_rule(), ROWS, SHEET)

        assert isinstance(exc_info.value.__cause__, WebhookDeliveryError)

    def test_sent_exactly_once(self, dispatcher, webhook_client, make_date_rule):
        webhook_client.post.return_value = WebhookResponse(status_code=500)

        with pytest.raises(DispatchError):
            dispatcher.dispatch(make_date_rule(), ROWS, SHEET)

        assert webhook_client.post.call_count == 1


class TestDispatchSkips:
    def test_no_rows_touches_no_transport(self, dispatcher, webhook_client, smtp_client, make_date_rule):
        result = dispatcher.dispatch(make_date_rule(), [], SHEET)

        assert result.status == "skipped"
        assert not result.is_success()
        webhook_client.post.assert_not_called()
        smtp_client.send.assert_not_called()

    def test_unknown_channel_raises(self, dispatcher, webhook_client, make_date_rule):
        rule = make_date_rule()
        rule.channel.type = "PAGER"

        with pytest.raises(ConfigurationError, match="Unknown notification type: PAGER"):
            dispatcher.dispatch(rule, ROWS, SHEET)

        webhook_client.post.assert_not_called()


class TestDispatchEmail:
    def test_sends_rendered_body(self, dispatcher, smtp_client, smtp_env_config, make_date_rule):
        rule = make_date_rule("EMAIL", channel={"type": "EMAIL", "email_recipient": "a@example.com, b@example.com"})

        result = dispatcher.dispatch(rule, ROWS, SHEET)

        assert result.is_success()
        assert result.status_code is None
        message, env_config, use_tls = smtp_client.send.call_args[0]
        assert env_config is smtp_env_config
        assert use_tls is True
        assert message["Subject"] == "期限通知"
        assert message["To"] == "a@example.com, b@example.com"
        assert message["From"] == "Sheet Notifier <bot@example.com>"
        body = message.get_content()
        assert "【5行目】日付: 2024/03/02" in body
        assert "送信日時: 2024/3/1 9:00:00" in body

    def test_custom_subject(self, dispatcher, smtp_client, make_status_rule):
        rule = make_status_rule(
            channel={"type": "EMAIL", "email_recipient": "a@example.com", "email_subject": "要対応"}
        )

        dispatcher.dispatch(rule, ROWS, SHEET)

        assert smtp_client.send.call_args[0][0]["Subject"] == "要対応"

    def test_smtp_not_configured(self, webhook_client, smtp_client, make_date_rule):
        dispatcher = NotificationDispatcher(
            webhook_client=webhook_client, smtp_client=smtp_client, env_config=EnvironmentConfig()
        )

        with pytest.raises(DispatchError, match="SMTP is not configured"):
            dispatcher.dispatch(make_date_rule("EMAIL"), ROWS, SHEET)

        smtp_client.send.assert_not_called()

    def test_delivery_failure_is_wrapped(self, dispatcher, smtp_client, make_date_rule):
        smtp_client.send.side_effect = SMTPDeliveryError("connection refused")

        with pytest.raises(DispatchError, match="Email send error: connection refused"):
            dispatcher.dispatch(make_date_rule("EMAIL"), ROWS, SHEET)

    def test_any_transport_error_is_wrapped(self, dispatcher, smtp_client, make_date_rule):
        smtp_client.send.side_effect = RuntimeError("boom")

        with pytest.raises(DispatchError, match="Email send error: boom") as exc_info:
            dispatcher.dispatch(make_date_rule("EMAIL"), ROWS, SHEET)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_invalid_recipient(self, dispatcher, smtp_client, make_date_rule):
        rule = make_date_rule(channel={"type": "EMAIL", "email_recipient": "not-an-address"})

        with pytest.raises(DispatchError, match="Invalid email address"):
            dispatcher.dispatch(rule, ROWS, SHEET)

        smtp_client.send.assert_not_called()

    def test_tls_setting_is_passed(self, webhook_client, smtp_client, smtp_env_config, make_date_rule):
        dispatcher = NotificationDispatcher(
            webhook_client=webhook_client,
            smtp_client=smtp_client,
            env_config=smtp_env_config,
            email_config=EmailConfig(use_tls=False),
        )

        dispatcher.dispatch(make_date_rule("EMAIL"), ROWS, SHEET)

        assert smtp_client.send.call_args[0][2] is False


class TestErrorReporter:
    def test_disabled_without_operator_address(self, smtp_client):
        reporter = ErrorReporter(env_config=EnvironmentConfig(smtp_host="smtp.example.com"), smtp_client=smtp_client)

        assert reporter.enabled is False
        assert reporter.report("rule", RuntimeError("boom")) is False
        smtp_client.send.assert_not_called()

    def test_disabled_without_smtp(self, smtp_client):
        reporter = ErrorReporter(
            env_config=EnvironmentConfig(error_notify_email="ops@example.com"), smtp_client=smtp_client
        )

        assert reporter.enabled is False

    def test_sends_report(self, smtp_client, smtp_env_config, clock):
        reporter = ErrorReporter(env_config=smtp_env_config, smtp_client=smtp_client, clock=clock)

        try:
            raise RuntimeError("sheet unreachable")
        except RuntimeError as e:
            error = e

        with log_context(run_id="run-123"):
            assert reporter.report("payment-deadline", error) is True

        message = smtp_client.send.call_args[0][0]
        assert message["Subject"] == ERROR_REPORT_SUBJECT.format(rule="payment-deadline")
        assert message["To"] == "ops@example.com"
        body = message.get_content()
        assert "ルール: payment-deadline" in body
        assert "実行ID: run-123" in body
        assert "発生日時: 2024/3/1 9:00:00" in body
        assert "エラー: RuntimeError: sheet unreachable" in body
        assert "Traceback" in body

    def test_delivery_failure_is_swallowed(self, smtp_client, smtp_env_config):
        smtp_client.send.side_effect = SMTPDeliveryError("down")
        reporter = ErrorReporter(env_config=smtp_env_config, smtp_client=smtp_client)

        assert reporter.report("rule", ValueError("bad")) is False
