"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Annotated, ClassVar, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator


class ChannelType(str, Enum):
    """Supported notification channel types."""

    SLACK = "SLACK"
    DISCORD = "DISCORD"
    EMAIL = "EMAIL"


class RuleKind(str, Enum):
    """Supported rule predicate families."""

    DATE_THRESHOLD = "date_threshold"
    STATUS_MATCH = "status_match"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _normalize_column(value: str) -> str:
    """Normalize a column letter and reject anything but ASCII letters."""
    letters = value.strip().upper()
    if not letters or not letters.isascii() or not letters.isalpha():
        raise ValueError(f"Invalid column letter: '{value}'")
    return letters


def _validate_timezone(value: str) -> str:
    stripped = value.strip()
    try:
        ZoneInfo(stripped)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: '{value}'") from e
    return stripped


def _clean_ids(values: List[str]) -> List[str]:
    return [v.strip() for v in values if v and v.strip()]


class SlackMentions(BaseModel):
    """Slack users and user groups to mention."""

    user_ids: List[str] = Field(default_factory=list, description="Slack member IDs")
    group_ids: List[str] = Field(default_factory=list, description="Slack user group IDs")

    @field_validator("user_ids", "group_ids")
    @classmethod
    def strip_ids(cls, v: List[str]) -> List[str]:
        """Strip whitespace and drop empty IDs."""
        return _clean_ids(v)


class DiscordMentions(BaseModel):
    """Discord users and roles to mention."""

    user_ids: List[str] = Field(default_factory=list, description="Discord user IDs")
    role_ids: List[str] = Field(default_factory=list, description="Discord role IDs")

    @field_validator("user_ids", "role_ids")
    @classmethod
    def strip_ids(cls, v: List[str]) -> List[str]:
        """Strip whitespace and drop empty IDs."""
        return _clean_ids(v)


class MentionConfig(BaseModel):
    """Mention targets per chat channel."""

    slack: SlackMentions = Field(default_factory=SlackMentions)
    discord: DiscordMentions = Field(default_factory=DiscordMentions)


class ChannelConfig(BaseModel):
    """Where and how a rule's notification is delivered."""

    type: ChannelType = Field(ChannelType.SLACK, description="Channel type (SLACK, DISCORD, EMAIL)")
    webhook_url: str = Field("", description="Incoming webhook URL for Slack/Discord")
    email_recipient: str = Field("", description="Recipient address(es) for EMAIL")
    email_subject: Optional[str] = Field(None, description="Email subject line")

    @field_validator("type", mode="before")
    @classmethod
    def upper_type(cls, v):
        """Accept channel types in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("webhook_url", "email_recipient")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from string fields."""
        return v.strip()

    @model_validator(mode="after")
    def validate_target(self):
        """Check that the channel has a delivery target."""
        if self.type in (ChannelType.SLACK, ChannelType.DISCORD) and not self.webhook_url:
            raise ValueError("webhook_url is required for Slack/Discord notifications")
        if self.type == ChannelType.EMAIL and not self.email_recipient:
            raise ValueError("email_recipient is required for email notifications")
        return self


class RuleBase(BaseModel):
    """Metadata shared by every rule kind."""

    DEFAULT_TITLE: ClassVar[str] = "通知"
    DEFAULT_SUBJECT: ClassVar[str] = "通知"

    name: str = Field(..., min_length=1, description="Unique rule name used in logs")
    sheet_name: str = Field("Sheet1", min_length=1, description="Worksheet (tab) name")
    title: Optional[str] = Field(None, description="Notification title / heading")
    channel: ChannelConfig = Field(..., description="Notification channel")
    mentions: MentionConfig = Field(default_factory=MentionConfig)
    timezone: str = Field("Asia/Tokyo", description="IANA timezone for date handling")
    start_row: int = Field(2, ge=1, description="First data row (header is the row above)")
    notification_columns: List[str] = Field(
        default_factory=lambda: ["D"],
        description="Extra columns whose values appear in the notification",
    )

    @field_validator("name", "sheet_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Strip whitespace from required string fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone name resolves."""
        return _validate_timezone(v)

    @field_validator("notification_columns")
    @classmethod
    def normalize_columns(cls, v: List[str]) -> List[str]:
        """Upper-case column letters, dropping blanks."""
        return [_normalize_column(col) for col in v if col and col.strip()]

    @property
    def notification_title(self) -> str:
        return self.title or self.DEFAULT_TITLE

    @property
    def email_subject(self) -> str:
        return self.channel.email_subject or self.DEFAULT_SUBJECT


class DateThresholdRule(RuleBase):
    """Notify when a date column is exactly N days from today."""

    DEFAULT_TITLE: ClassVar[str] = "日付通知"
    DEFAULT_SUBJECT: ClassVar[str] = "期限通知"

    kind: Literal["date_threshold"] = "date_threshold"
    date_column: str = Field("L", description="Column holding the deadline date")
    days_before_notification: int = Field(
        1, ge=0, description="Days between today and the deadline that trigger a notice"
    )

    @field_validator("date_column")
    @classmethod
    def normalize_date_column(cls, v: str) -> str:
        """Upper-case the date column letter."""
        return _normalize_column(v)


class StatusMatchRule(RuleBase):
    """Notify when every configured column equals its expected value."""

    DEFAULT_TITLE: ClassVar[str] = "ステータス通知"
    DEFAULT_SUBJECT: ClassVar[str] = "ステータス通知"

    kind: Literal["status_match"] = "status_match"
    match_columns: List[str] = Field(..., min_length=1, description="Columns to compare")
    match_values: List[str] = Field(..., min_length=1, description="Expected values, in column order")

    @field_validator("match_columns")
    @classmethod
    def normalize_match_columns(cls, v: List[str]) -> List[str]:
        """Upper-case the match column letters."""
        return [_normalize_column(col) for col in v]

    @model_validator(mode="after")
    def validate_parallel_lists(self):
        """Check match_columns and match_values line up."""
        if len(self.match_columns) != len(self.match_values):
            raise ValueError(
                "match_columns and match_values must have the same length "
                f"({len(self.match_columns)} != {len(self.match_values)})"
            )
        return self


Rule = Annotated[Union[DateThresholdRule, StatusMatchRule], Field(discriminator="kind")]


class SpreadsheetConfig(BaseModel):
    """Which Google spreadsheet to read."""

    id: Optional[str] = Field(None, description="Spreadsheet key")
    url: Optional[str] = Field(None, description="Full spreadsheet URL")

    @model_validator(mode="after")
    def require_locator(self):
        """Require either id or url."""
        if not (self.id or self.url):
            raise ValueError("spreadsheet requires either 'id' or 'url'")
        return self


class ScheduleConfig(BaseModel):
    """Daily trigger time for scheduled runs."""

    hour: int = Field(9, ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)
    timezone: str = Field("Asia/Tokyo")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone name resolves."""
        return _validate_timezone(v)


class EmailConfig(BaseModel):
    """Email notification settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """Advanced runtime settings."""

    http_request_timeout: int = Field(
        30, ge=5, le=300, description="Request timeout for webhook calls (seconds)"
    )
    user_agent: str = Field(
        "SheetNotifier/1.0",
        min_length=1,
        description="User-Agent string for HTTP requests",
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        """Strip whitespace from user agent."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object for the Sheet Notifier."""

    spreadsheet: SpreadsheetConfig = Field(..., description="Spreadsheet to monitor")
    rules: List[Rule] = Field(..., min_length=1, description="Notification rules")
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    advanced: AdvancedConfig = Field(
        default_factory=AdvancedConfig, description="Advanced runtime settings"
    )

    @model_validator(mode="after")
    def validate_unique_rule_names(self):
        """Reject duplicate rule names."""
        seen = set()
        for rule in self.rules:
            if rule.name in seen:
                raise ValueError(f"Duplicate rule name: {rule.name} appears multiple times")
            seen.add(rule.name)
        return self

    def get_rule(self, name: str) -> Optional[Union[DateThresholdRule, StatusMatchRule]]:
        """Get a rule by its name."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def uses_email(self) -> bool:
        """Whether any rule delivers by email."""
        return any(rule.channel.type == ChannelType.EMAIL for rule in self.rules)
