from pydantic_settings import BaseSettings
from functools import lru_cache
import os


# .env lives in the repo root, two levels up from backend/clickaudit/
_ENV_PATH = os.path.join(os.path.dirname(__file__), "..", "..", ".env")


class Settings(BaseSettings):
    # Browser
    headless: bool = True
    page_load_timeout: int = 30000  # milliseconds
    default_timeout: int = 30000  # milliseconds
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )

    # Request budget
    request_timeout: int = 300  # seconds, whole extraction
    fetch_timeout: float = 5.0  # seconds, per image / svg fetch

    # Previews
    render_previews: bool = True
    preview_max_size: int = 200  # longest edge of background / img thumbnails
    svg_fit_width: int = 200
    svg_extreme_size: int = 40  # used for very wide or very tall svgs
    svg_fixed_color: str = "#888888"

    # Cookie banner
    cookie_settle_ms: int = 5000
    cookie_phrases: list[str] = []

    # Snapshot bounds
    max_snapshot_nodes: int = 5000
    max_snapshot_depth: int = 200
    max_ancestor_hops: int = 500
    aria_hidden_max_depth: int = 10

    # Opt-in: report whether an element is itself hosted inside a shadow tree
    detect_shadow_hosting: bool = False

    class Config:
        env_file = _ENV_PATH if os.path.exists(_ENV_PATH) else None
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
