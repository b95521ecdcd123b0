"""Centralized configuration for docsite-search using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``DOCSITE_SEARCH_*`` environment variables.

    Command-line flags override these values; everything here has a default
    matching the conventional site layout (``app/`` content, ``public/`` output).
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSITE_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index builder
    content_root: Path = Field(default=Path("app"), description="Directory holding the content tree")
    output_path: Path = Field(
        default=Path("public/search-index.json"), description="Where the build writes the index file"
    )
    content_extensions: str = Field(default=".mdx,.md", description="Comma-separated content file extensions")
    index_page_names: str = Field(
        default="page.mdx,page.md",
        description="Comma-separated file names that represent their directory's page",
    )
    skip_dirs: str = Field(
        default="components,context,fonts,images,api",
        description="Comma-separated top-level directories that hold no content pages",
    )
    content_root_segment: str = Field(default="app", description="Leading path segment ignored for categories")
    container_segment: str = Field(
        default="docs", description="Generic container folder that defers to the folder below it"
    )
    home_label: str = Field(default="Home", min_length=1, description="Category for root-level pages")
    excerpt_length: int = Field(default=500, ge=0, description="Maximum plain-text excerpt length")

    # Query engine
    index_url: str = Field(default="/search-index.json", description="Location the runtime fetches the index from")
    fuzzy_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Maximum match score accepted; higher is more permissive",
    )
    fuzzy_distance: int = Field(
        default=100, ge=0, description="How far into a value a match may start before it stops counting"
    )
    result_limit: int = Field(default=8, ge=1, description="Maximum number of results per query")
    debounce_ms: int = Field(default=0, ge=0, description="Delay before recomputing results after a keystroke")
    header_offset: int = Field(default=80, ge=0, description="Fixed header height applied when scrolling to anchors")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    @model_validator(mode="before")
    @classmethod
    def _uppercase_log_level(cls, data: object) -> object:
        if isinstance(data, dict) and isinstance(data.get("log_level"), str):
            return {**data, "log_level": data["log_level"].upper()}
        return data

    @model_validator(mode="after")
    def _check_extensions(self) -> "Settings":
        if not self.get_content_extensions():
            raise ValueError("DOCSITE_SEARCH_CONTENT_EXTENSIONS must list at least one extension")
        return self

    def get_content_extensions(self) -> tuple[str, ...]:
        """Get content extensions, each with a leading dot."""
        extensions = [item.strip() for item in self.content_extensions.split(",") if item.strip()]
        return tuple(ext if ext.startswith(".") else f".{ext}" for ext in extensions)

    def get_index_page_names(self) -> tuple[str, ...]:
        return tuple(name.strip() for name in self.index_page_names.split(",") if name.strip())

    def get_skip_dirs(self) -> frozenset[str]:
        """Get the set of top-level directories the builder never enters."""
        if not self.skip_dirs:
            return frozenset()
        return frozenset(name.strip() for name in self.skip_dirs.split(",") if name.strip())
