"""Flat key/value property store support.

Rules can be configured without a YAML file by setting properties such as
SHEET_NAME, DATE_COLUMN or STATUS_MATCH_COLUMNS (usually environment
variables, optionally loaded from `.env`). This module turns such a mapping
into the same dictionary shape that a YAML config file produces.

Mention lists support per-rule overrides: DATE_SLACK_MENTION_USERS wins over
SLACK_MENTION_USERS whenever it is present, even when set to an empty string.
"""

from typing import Any, Dict, List, Mapping, Optional

DATE_RULE_NAME = "date"
STATUS_RULE_NAME = "status"

_MENTION_KEYS = {
    ("slack", "user_ids"): "SLACK_MENTION_USERS",
    ("slack", "group_ids"): "SLACK_MENTION_GROUPS",
    ("discord", "user_ids"): "DISCORD_MENTION_USERS",
    ("discord", "role_ids"): "DISCORD_MENTION_ROLES",
}


def parse_csv(value: Optional[str]) -> List[str]:
    """Split a comma separated value, trimming items and dropping empties.

    Example:
        >>> parse_csv(" U1, ,U2 ")
        ['U1', 'U2']
    """
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _get(props: Mapping[str, str], key: str, default: Optional[str] = None) -> Optional[str]:
    value = props.get(key)
    return value if value else default


def _mentions(props: Mapping[str, str], prefix: str) -> Dict[str, Dict[str, List[str]]]:
    mentions: Dict[str, Dict[str, List[str]]] = {"slack": {}, "discord": {}}
    for (channel, field), key in _MENTION_KEYS.items():
        override = props.get(f"{prefix}_{key}")
        raw = override if override is not None else props.get(key)
        mentions[channel][field] = parse_csv(raw)
    return mentions


def _common_rule_fields(props: Mapping[str, str], prefix: str) -> Dict[str, Any]:
    channel: Dict[str, Any] = {
        "type": _get(props, "NOTIFICATION_TYPE", "SLACK"),
        "webhook_url": _get(props, "WEBHOOK_URL", ""),
        "email_recipient": _get(props, "EMAIL_RECIPIENT", ""),
    }
    subject = _get(props, "EMAIL_SUBJECT")
    if subject:
        channel["email_subject"] = subject

    return {
        "sheet_name": _get(props, "SHEET_NAME", "Sheet1"),
        "channel": channel,
        "mentions": _mentions(props, prefix),
        "timezone": _get(props, "TIMEZONE", "Asia/Tokyo"),
        "start_row": _get(props, "START_ROW", "2"),
        "notification_columns": [
            col.strip() for col in (_get(props, "NOTIFICATION_COLUMNS", "D")).split(",")
        ],
    }


def build_date_rule_dict(props: Mapping[str, str]) -> Dict[str, Any]:
    """Build the date threshold rule from properties."""
    rule = {
        "name": DATE_RULE_NAME,
        "kind": "date_threshold",
        "date_column": _get(props, "DATE_COLUMN", "L"),
        "days_before_notification": _get(props, "DAYS_BEFORE_NOTIFICATION", "1"),
        **_common_rule_fields(props, "DATE"),
    }
    title = _get(props, "DATE_NOTIFICATION_TITLE")
    if title:
        rule["title"] = title
    return rule


def build_status_rule_dict(props: Mapping[str, str]) -> Dict[str, Any]:
    """Build the status match rule from properties."""
    rule = {
        "name": STATUS_RULE_NAME,
        "kind": "status_match",
        "match_columns": parse_csv(props.get("STATUS_MATCH_COLUMNS")),
        "match_values": parse_csv(props.get("STATUS_MATCH_VALUES")),
        **_common_rule_fields(props, "STATUS"),
    }
    title = _get(props, "STATUS_NOTIFICATION_TITLE")
    if title:
        rule["title"] = title
    return rule


def build_config_dict_from_properties(props: Mapping[str, str]) -> Dict[str, Any]:
    """
    Build a raw configuration dictionary from flat properties.

    A date rule is always produced; a status rule only when
    STATUS_MATCH_COLUMNS is present.

    Args:
        props: Property mapping (e.g. os.environ)

    Returns:
        Dictionary ready for AppConfig validation
    """
    spreadsheet: Dict[str, str] = {}
    if _get(props, "SPREADSHEET_ID"):
        spreadsheet["id"] = props["SPREADSHEET_ID"]
    if _get(props, "SHEET_URL"):
        spreadsheet["url"] = props["SHEET_URL"]

    rules = [build_date_rule_dict(props)]
    if "STATUS_MATCH_COLUMNS" in props:
        rules.append(build_status_rule_dict(props))

    schedule: Dict[str, Any] = {"timezone": _get(props, "TIMEZONE", "Asia/Tokyo")}
    if _get(props, "SCHEDULE_HOUR"):
        schedule["hour"] = props["SCHEDULE_HOUR"]
    if _get(props, "SCHEDULE_MINUTE"):
        schedule["minute"] = props["SCHEDULE_MINUTE"]

    config: Dict[str, Any] = {
        "spreadsheet": spreadsheet,
        "rules": rules,
        "schedule": schedule,
    }
    if _get(props, "LOG_FORMAT"):
        config["logging"] = {"format": props["LOG_FORMAT"]}

    return config
