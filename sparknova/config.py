from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_state_path() -> Path:
    return Path.home() / ".sparknova" / "state.json"


class LauncherConfig(BaseSettings):
    """
    Runtime settings of the launcher.

    Every field can be set through a ``SPARKNOVA_``-prefixed environment
    variable, e.g. ``SPARKNOVA_WS_PORT=9001``.
    """
    model_config = SettingsConfigDict(env_prefix="SPARKNOVA_", env_ignore_empty=True)

    state_path: Path = Field(default_factory=default_state_path)
    ws_host: str = "localhost"
    ws_port: int = 8765
    auto_focus_delay: float = Field(default=150, ge=0)
    log_level: str = "INFO"
