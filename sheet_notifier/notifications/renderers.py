"""Channel payload renderers.

Each renderer is a pure function of a RenderContext and returns the wire
payload for its channel:

- render_slack: incoming-webhook body with mrkdwn blocks and fallback text
- render_discord: webhook body with a header embed and one embed per row
- render_email: plain-text body rendered from a Jinja2 template

RENDERERS maps ChannelType to the renderer function.
"""

from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence

from sheet_notifier.config.models import ChannelType
from sheet_notifier.matching.models import RowData, SheetInfo
from sheet_notifier.utils.dates import format_iso_timestamp, format_send_timestamp, utc_now

from .templates import TemplateRenderer

DISCORD_EMBED_COLOR = 15105570

EMAIL_SEPARATOR = "--------------------"


@dataclass(frozen=True)
class RenderContext:
    """Everything a renderer needs to build one notification.

    Attributes:
        rule_title: Notification title
        rows: Matching rows, in sheet order
        sheet_info: Worksheet title, URL and header labels
        timezone: IANA timezone of the rule (email send timestamp)
        mention_text: Pre-rendered mention tags ("" for none)
        allowed_mentions: Discord allowed_mentions object, if any
        rendered_at: Render instant (Discord embed timestamps, email footer)
    """

    rule_title: str
    rows: Sequence[RowData]
    sheet_info: SheetInfo
    timezone: str = "Asia/Tokyo"
    mention_text: str = ""
    allowed_mentions: Optional[Dict[str, List[str]]] = None
    rendered_at: datetime = field(default_factory=utc_now)

    @property
    def labels(self) -> Dict[str, str]:
        return dict(self.sheet_info.column_labels)


def build_slack_fallback_text(context: RenderContext) -> str:
    """Plain mrkdwn text shown where blocks cannot be displayed."""
    lines = []
    if context.mention_text:
        lines.append(context.mention_text)
    lines.append(context.rule_title)
    lines.append(f"該当件数: {len(context.rows)}件")

    for row in context.rows:
        row_label = f"<{row.row_url}|{row.row_number}行目>" if row.row_url else f"{row.row_number}行目"
        date_info = f" {row.date}" if row.date else ""
        lines.append(f"{row_label}{date_info}")
        for column, value in row.columns.items():
            lines.append(f"   [{column}列] {value}")

    return "\n".join(lines)


def _slack_row_fields(row: RowData, sheet_info: SheetInfo) -> List[Dict[str, str]]:
    row_text = f"<{row.row_url}|{row.row_number}>" if row.row_url else str(row.row_number)
    fields = [{"type": "mrkdwn", "text": f"*行番号*\n{row_text}"}]

    if row.date:
        fields.append({"type": "mrkdwn", "text": f"*日付*\n{row.date}"})

    for column, value in row.columns.items():
        label = sheet_info.label_for(column, f"{column}列")
        fields.append({"type": "mrkdwn", "text": f"*{label}*\n{value or '-'}"})

    return fields


def render_slack(context: RenderContext) -> Dict[str, Any]:
    """Render a Slack incoming-webhook payload.

    Returns:
        {"text": fallback, "blocks": [header section, (divider, row section)...]}
    """
    sheet_info = context.sheet_info
    header_prefix = f"{context.mention_text}\n" if context.mention_text else ""
    header_text = (
        f"{header_prefix}*{context.rule_title}*\n"
        f"該当件数：{len(context.rows)}件\n"
        f"シート：{sheet_info.title}\n"
        f"URL：{sheet_info.sheet_url}"
    )

    blocks: List[Dict[str, Any]] = [
        {"type": "section", "text": {"type": "mrkdwn", "text": header_text}}
    ]
    for row in context.rows:
        blocks.append({"type": "divider"})
        blocks.append({"type": "section", "fields": _slack_row_fields(row, sheet_info)})

    return {"text": build_slack_fallback_text(context), "blocks": blocks}


def _discord_row_fields(row: RowData, sheet_info: SheetInfo) -> List[Dict[str, Any]]:
    row_text = f"[{row.row_number}行目]({row.row_url})" if row.row_url else f"{row.row_number}行目"
    fields: List[Dict[str, Any]] = [{"name": "📍 行番号", "value": row_text, "inline": True}]

    if row.date:
        fields.append({"name": "📅 日付", "value": row.date, "inline": True})

    for column, value in row.columns.items():
        fields.append(
            {
                "name": sheet_info.label_for(column, column),
                "value": value or "-",
                "inline": True,
            }
        )

    return fields


def render_discord(context: RenderContext) -> Dict[str, Any]:
    """Render a Discord webhook payload.

    content and allowed_mentions are omitted when there is nothing to mention.
    """
    sheet_info = context.sheet_info
    timestamp = format_iso_timestamp(context.rendered_at)

    embeds: List[Dict[str, Any]] = [
        {
            "title": context.rule_title,
            "description": f"該当件数：{len(context.rows)}件",
            "color": DISCORD_EMBED_COLOR,
            "fields": [
                {"name": "📊 シート名", "value": sheet_info.title, "inline": True},
                {"name": "🔗 シートURL", "value": f"[開く]({sheet_info.sheet_url})", "inline": True},
            ],
        }
    ]
    for row in context.rows:
        embeds.append(
            {
                "color": DISCORD_EMBED_COLOR,
                "fields": _discord_row_fields(row, sheet_info),
                "timestamp": timestamp,
            }
        )

    payload: Dict[str, Any] = {}
    if context.mention_text:
        payload["content"] = context.mention_text
    if context.allowed_mentions:
        payload["allowed_mentions"] = context.allowed_mentions
    payload["embeds"] = embeds
    return payload


@lru_cache(maxsize=1)
def _default_templates() -> TemplateRenderer:
    return TemplateRenderer()


def render_email(context: RenderContext, templates: Optional[TemplateRenderer] = None) -> str:
    """Render the plain-text email body.

    Raises:
        NotificationTemplateError: If the template fails to render
    """
    renderer = templates or _default_templates()
    return renderer.render_rule_alert(
        {
            "title": context.rule_title,
            "rows": list(context.rows),
            "sent_at": format_send_timestamp(context.rendered_at, context.timezone),
        }
    )


Renderer = Callable[[RenderContext], Any]

RENDERERS: Dict[ChannelType, Renderer] = {
    ChannelType.SLACK: render_slack,
    ChannelType.DISCORD: render_discord,
    ChannelType.EMAIL: render_email,
}
