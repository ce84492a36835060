"""Mention tag assembly for chat channels."""

from typing import Dict, List, Optional

from sheet_notifier.config.models import DiscordMentions, SlackMentions


def _join(tags: List[str]) -> str:
    return " ".join(tags).strip()


def build_slack_mention_text(mentions: SlackMentions) -> str:
    """Build Slack mention tags for users and user groups.

    Example:
        >>> build_slack_mention_text(SlackMentions(user_ids=["U1"], group_ids=["G1"]))
        '<@U1> <!subteam^G1>'
    """
    tags = [f"<@{user_id}>" for user_id in mentions.user_ids]
    tags.extend(f"<!subteam^{group_id}>" for group_id in mentions.group_ids)
    return _join(tags)


def build_discord_mention_text(mentions: DiscordMentions) -> str:
    """Build Discord mention tags for users and roles.

    Example:
        >>> build_discord_mention_text(DiscordMentions(user_ids=["1"], role_ids=["2"]))
        '<@1> <@&2>'
    """
    tags = [f"<@{user_id}>" for user_id in mentions.user_ids]
    tags.extend(f"<@&{role_id}>" for role_id in mentions.role_ids)
    return _join(tags)


def discord_allowed_mentions(mentions: DiscordMentions) -> Optional[Dict[str, List[str]]]:
    """Build the allowed_mentions object so Discord pings only configured targets.

    Returns:
        {"parse": [...]} with "users"/"roles" for non-empty id lists, or None
    """
    parse = []
    if mentions.user_ids:
        parse.append("users")
    if mentions.role_ids:
        parse.append("roles")
    return {"parse": parse} if parse else None
