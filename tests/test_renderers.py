"""Tests for channel payload renderers."""

import pytest

from sheet_notifier.config.models import ChannelType
from sheet_notifier.matching.models import RowData, SheetInfo
from sheet_notifier.notifications.renderers import (
    DISCORD_EMBED_COLOR,
    RENDERERS,
    RenderContext,
    build_slack_fallback_text,
    render_discord,
    render_email,
    render_slack,
)

SHEET_URL = "https://docs.google.com/spreadsheets/d/test#gid=0"
ROW_URL = f"{SHEET_URL}&range=L5"


@pytest.fixture
def sheet_info():
    return SheetInfo(title="Tasks", sheet_url=SHEET_URL, column_labels={"D": "担当者"})


@pytest.fixture
def date_row():
    return RowData(row_number=5, date="2024/03/02", columns={"D": "Alice", "E": ""}, row_url=ROW_URL)


@pytest.fixture
def context(sheet_info, date_row, fixed_now):
    return RenderContext(
        rule_title="支払期限のお知らせ",
        rows=[date_row],
        sheet_info=sheet_info,
        rendered_at=fixed_now,
    )


def with_changes(context, **changes):
    data = {
        "rule_title": context.rule_title,
        "rows": context.rows,
        "sheet_info": context.sheet_info,
        "timezone": context.timezone,
        "mention_text": context.mention_text,
        "allowed_mentions": context.allowed_mentions,
        "rendered_at": context.rendered_at,
    }
    data.update(changes)
    return RenderContext(**data)


class TestRenderSlack:
    def test_header_block(self, context):
        payload = render_slack(context)

        header = payload["blocks"][0]
        assert header == {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*支払期限のお知らせ*\n該当件数：1件\nシート：Tasks\nURL：{SHEET_URL}",
            },
        }

    def test_row_blocks(self, context):
        payload = render_slack(context)

        assert payload["blocks"][1] == {"type": "divider"}
        assert payload["blocks"][2] == {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*行番号*\n<{ROW_URL}|5>"},
                {"type": "mrkdwn", "text": "*日付*\n2024/03/02"},
                {"type": "mrkdwn", "text": "*担当者*\nAlice"},
                {"type": "mrkdwn", "text": "*E列*\n-"},
            ],
        }
        assert len(payload["blocks"]) == 3

    def test_fallback_text(self, context):
        assert render_slack(context)["text"] == (
            "支払期限のお知らせ\n"
            "該当件数: 1件\n"
            f"<{ROW_URL}|5行目> 2024/03/02\n"
            "   [D列] Alice\n"
            "   [E列] "
        )

    def test_mentions_lead_header_and_fallback(self, context):
        payload = render_slack(with_changes(context, mention_text="<@U1> <!subteam^S1>"))

        assert payload["blocks"][0]["text"]["text"].startswith("<@U1> <!subteam^S1>\n*支払期限のお知らせ*")
        assert payload["text"].startswith("<@U1> <!subteam^S1>\n支払期限のお知らせ")

    def test_status_rows_have_no_date_field(self, context):
        row = RowData(row_number=3, columns={"D": "Bob"})
        payload = render_slack(with_changes(context, rows=[row]))

        fields = payload["blocks"][2]["fields"]
        assert fields[0]["text"] == "*行番号*\n3"
        assert [f["text"] for f in fields[1:]] == ["*担当者*\nBob"]
        assert build_slack_fallback_text(with_changes(context, rows=[row])).endswith("3行目\n   [D列] Bob")

    def test_row_without_extra_columns(self, context):
        payload = render_slack(with_changes(context, rows=[RowData(row_number=2, columns={})]))

        assert payload["blocks"][2] == {
            "type": "section",
            "fields": [{"type": "mrkdwn", "text": "*行番号*\n2"}],
        }
        assert payload["text"].endswith("該当件数: 1件\n2行目")

    def test_divider_per_row(self, context, date_row):
        payload = render_slack(with_changes(context, rows=[date_row, date_row, date_row]))

        assert [b["type"] for b in payload["blocks"]] == [
            "section", "divider", "section", "divider", "section", "divider", "section",
        ]


class TestRenderDiscord:
    def test_header_embed(self, context):
        payload = render_discord(context)

        assert payload["embeds"][0] == {
            "title": "支払期限のお知らせ",
            "description": "該当件数：1件",
            "color": DISCORD_EMBED_COLOR,
            "fields": [
                {"name": "📊 シート名", "value": "Tasks", "inline": True},
                {"name": "🔗 シートURL", "value": f"[開く]({SHEET_URL})", "inline": True},
            ],
        }

    def test_row_embed(self, context):
        embed = render_discord(context)["embeds"][1]

        assert embed == {
            "color": 15105570,
            "fields": [
                {"name": "📍 行番号", "value": f"[5行目]({ROW_URL})", "inline": True},
                {"name": "📅 日付", "value": "2024/03/02", "inline": True},
                {"name": "担当者", "value": "Alice", "inline": True},
                {"name": "E", "value": "-", "inline": True},
            ],
            "timestamp": "2024-03-01T00:00:00.000Z",
        }

    def test_no_content_without_mentions(self, context):
        payload = render_discord(context)

        assert "content" not in payload
        assert "allowed_mentions" not in payload

    def test_mentions_set_content_and_allowed_mentions(self, context):
        payload = render_discord(
            with_changes(context, mention_text="<@1> <@&2>", allowed_mentions={"parse": ["users", "roles"]})
        )

        assert payload["content"] == "<@1> <@&2>"
        assert payload["allowed_mentions"] == {"parse": ["users", "roles"]}
        assert list(payload) == ["content", "allowed_mentions", "embeds"]

    def test_row_without_extra_columns(self, context):
        embed = render_discord(with_changes(context, rows=[RowData(row_number=2, columns={})]))["embeds"][1]

        assert embed["fields"] == [{"name": "📍 行番号", "value": "2行目", "inline": True}]

    def test_one_embed_per_row(self, context, date_row):
        payload = render_discord(with_changes(context, rows=[date_row, date_row]))

        assert len(payload["embeds"]) == 3


class TestRenderEmail:
    def test_body(self, context):
        assert render_email(context) == (
            "支払期限のお知らせ\n"
            "該当件数: 1件\n"
            "\n"
            "--------------------\n"
            "\n"
            "【5行目】日付: 2024/03/02\n"
            f"リンク: {ROW_URL}\n"
            "[D列] Alice\n"
            "[E列] \n"
            "\n"
            "--------------------\n"
            "送信日時: 2024/3/1 9:00:00"
        )

    def test_row_without_date_or_link(self, context):
        row = RowData(row_number=3, columns={"D": "Bob"})

        body = render_email(with_changes(context, rows=[row]))

        assert "【3行目】\n[D列] Bob\n" in body
        assert "リンク" not in body

    def test_row_without_extra_columns(self, context):
        body = render_email(with_changes(context, rows=[RowData(row_number=2, columns={})]))

        assert "--------------------\n\n【2行目】\n\n--------------------\n" in body

    def test_send_time_uses_rule_timezone(self, context):
        body = render_email(with_changes(context, timezone="UTC"))

        assert body.endswith("送信日時: 2024/3/1 0:00:00")


def test_renderers_registry():
    assert RENDERERS == {
        ChannelType.SLACK: render_slack,
        ChannelType.DISCORD: render_discord,
        ChannelType.EMAIL: render_email,
    }
