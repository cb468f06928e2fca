from pydantic import ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings


class SlackSettings(BaseSettings):
    """Slack API settings"""

    bot_token: str = Field(description="Slack bot token (xoxb-...)")
    signing_secret: SecretStr = Field(
        default=SecretStr(""), description="Signing secret for the Events API"
    )
    app_token: str = Field(
        default="", description="Slack app token (xapp-...), enables Socket Mode"
    )
    bot_id: str = ""
    channel_id: str = Field(
        default="",
        description="Monitored channel ID. Empty means respond in every channel",
    )
    port: int = Field(default=3000, description="Events API listener port")

    model_config = ConfigDict(env_prefix="SLACK_")  # type: ignore[assignment,typeddict-unknown-key]

    @property
    def monitored_channel(self) -> str | None:
        return self.channel_id or None

    @property
    def socket_mode(self) -> bool:
        return bool(self.app_token)


class BackendSettings(BaseSettings):
    """Answer backend settings"""

    url: str = Field(
        default="http://localhost:8000", description="Base URL of the answer backend"
    )
    bearer_token: SecretStr | None = Field(
        default=None, description="Bearer token for the answer backend"
    )
    model: str = Field(
        default="anthropic/claude-3.5-sonnet",
        description="Model name forwarded to the backend",
    )
    timeout: float = Field(default=30.0, description="Per-attempt timeout in seconds")
    max_retries: int = Field(default=3, ge=1, description="Maximum request attempts")
    display_name: str = Field(
        default="The assistant", description="Backend name used in user-facing text"
    )

    model_config = ConfigDict(env_prefix="BACKEND_")  # type: ignore[assignment,typeddict-unknown-key]


class ConversationSettings(BaseSettings):
    """Conversation continuity settings"""

    history_limit: int = Field(
        default=50,
        ge=1,
        description="Most recent thread messages scanned for a conversation ID",
    )
    history_max_pages: int = Field(
        default=5, ge=1, description="Maximum conversations.replies pages fetched"
    )

    model_config = ConfigDict(env_prefix="CONVERSATION_")  # type: ignore[assignment,typeddict-unknown-key]


class Settings(BaseSettings):
    """Main application settings"""

    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )
    slack: SlackSettings = Field(default_factory=SlackSettings)  # type: ignore[arg-type]
    backend: BackendSettings = Field(default_factory=BackendSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    health_port: int = Field(default=8080, description="Health check server port")
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = True

    model_config = ConfigDict(
        env_file=".env", extra="ignore", env_file_encoding="utf-8"
    )  # type: ignore[assignment,typeddict-unknown-key]


def validate_settings(settings: Settings) -> list[str]:
    """Return a list of configuration problems that must block startup."""
    problems = []

    if not settings.slack.bot_token:
        problems.append("SLACK_BOT_TOKEN is not set")
    elif not settings.slack.bot_token.startswith("xoxb-"):
        problems.append("SLACK_BOT_TOKEN should start with 'xoxb-'")

    if settings.slack.socket_mode:
        if not settings.slack.app_token.startswith("xapp-"):
            problems.append("SLACK_APP_TOKEN should start with 'xapp-'")
    elif not settings.slack.signing_secret.get_secret_value():
        problems.append("SLACK_SIGNING_SECRET is required for the Events API")

    return problems
