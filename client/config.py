from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REWARDS_",
        env_file=".env",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000"
    # a hung draw request surfaces as a retryable error after this long
    request_timeout: float = 10.0

    wheel_spin_seconds: float = 5.0
    wheel_start_delay: float = 0.1
    wheel_min_turns: int = 4
    wheel_max_turns: int = 6

    jackpot_spin_seconds: float = 3.0
    jackpot_settle_seconds: float = 0.5
    jackpot_frame_seconds: float = 1 / 60

    # pause on the settled result before the reveal takes over
    handoff_seconds: float = 0.5
