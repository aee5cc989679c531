"""
Settings - Pydantic models for recorder, replay and CLI configuration.

Each section is a plain BaseModel; only the root Settings reads the
environment, using ``QA_RECORDER__<SECTION>__<FIELD>`` names.

Example:
    >>> from qa_recorder.config import load_config
    >>> settings = load_config()
    >>> settings.replay.delay_for("slow")
    1000
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SelectorType = Literal["css", "xpath", "aria", "text", "pierce"]

# Replay options that travel in the cross-navigation checkpoint
CARRIED_REPLAY_FIELDS = ("timeout_ms", "poll_interval_ms", "settle_ms", "use_debugger")


class BrowserSettings(BaseModel):
    """
    Browser launch settings used by the CLI.
    
    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser type
        channel: Optional branded channel (chrome, msedge)
        timeout_ms: Default timeout for navigations
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
    """
    headless: bool = False
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    channel: Optional[str] = None
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)


class RecorderSettings(BaseModel):
    """
    Recording settings.
    
    Attributes:
        selector_types: Selector schemes to synthesize, in order
        test_id_attribute: Attribute page authors put on elements for automation
        input_debounce_ms: Pause after which rapid input events become one step
        text_selector_max_length: Longer text is not used as a locator
        max_path_depth: Segments kept in positional CSS/XPath paths
    """
    selector_types: List[SelectorType] = Field(default_factory=lambda: ["css", "xpath"])
    test_id_attribute: str = "data-testid"
    input_debounce_ms: int = Field(default=500, ge=0, le=10000)
    text_selector_max_length: int = Field(default=50, ge=1, le=500)
    max_path_depth: int = Field(default=5, ge=1, le=20)
    
    @field_validator("selector_types")
    @classmethod
    def _require_one_type(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one selector type is required")
        # Preserve order, drop repeats
        return list(dict.fromkeys(value))


class ReplaySettings(BaseModel):
    """
    Replay settings.
    
    Attributes:
        speed: Default replay speed
        speed_delays_ms: Inter-step delay for each speed
        timeout_ms: Default wait-for-element timeout
        poll_interval_ms: Resolver polling interval while waiting
        settle_ms: Pause after scrolling an element into view
        use_debugger: Prefer debugger-level input dispatch for clicks
        checkpoint_key: Session storage slot for the pending-replay checkpoint
    """
    speed: str = "normal"
    speed_delays_ms: Dict[str, int] = Field(
        default_factory=lambda: {"slow": 1000, "normal": 100, "fast": 0}
    )
    timeout_ms: int = Field(default=5000, ge=100, le=300000)
    poll_interval_ms: int = Field(default=100, ge=10, le=5000)
    settle_ms: int = Field(default=100, ge=0, le=5000)
    use_debugger: bool = True
    checkpoint_key: str = "qa_recorder_pending_replay"
    
    def delay_for(self, speed: str) -> int:
        """Inter-step delay in milliseconds for a speed name."""
        return self.speed_delays_ms.get(speed, self.speed_delays_ms.get("normal", 100))
    
    def carried(self) -> Dict[str, Any]:
        """Options a run resumed after a navigation continues with."""
        return self.model_dump(include=set(CARRIED_REPLAY_FIELDS))


class StorageSettings(BaseModel):
    """
    Recording storage settings.
    
    Attributes:
        recordings_file: JSON file holding saved recordings
    """
    recordings_file: str = "recordings.json"


class LoggingSettings(BaseModel):
    """
    Where log records go.
    
    Attributes:
        level: Threshold for qa_recorder loggers
        file: Optional log file in addition to the terminal
        json_format: Write the log file as JSON lines
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    All QA Recorder configuration.

    Precedence when built by the loader: overrides from the command line,
    then the YAML file, then ``QA_RECORDER__`` environment variables, then
    the defaults below.

    Example:
        >>> Settings(replay=ReplaySettings(speed="fast")).replay.delay_for("fast")
        0
    """
    
    model_config = SettingsConfigDict(
        env_prefix="QA_RECORDER__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    recorder: RecorderSettings = Field(default_factory=RecorderSettings)
    replay: ReplaySettings = Field(default_factory=ReplaySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: Dict[str, Any]) -> "Settings":
        """
        Return a copy with nested ``overrides`` applied section by section.

        Keys left out of a section keep their current value, so
        ``{"replay": {"speed": "slow"}}`` does not reset the timeout.
        """
        merged = _apply(self.model_dump(), overrides)
        return Settings(**merged)


def _apply(target: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    for name, change in changes.items():
        current = target.get(name)
        if isinstance(current, dict) and isinstance(change, dict):
            _apply(current, change)
        else:
            target[name] = change
    return target
