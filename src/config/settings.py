"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use BLADERUNNER_ prefix (e.g., BLADERUNNER_SAFE_OUTPUT=false).

Settings can also be loaded from a .env file in the project root.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use BLADERUNNER_ prefix.

    Examples:
        BLADERUNNER_SAFE_OUTPUT=false
        BLADERUNNER_BUFFER=minify_html
        BLADERUNNER_INCLUDES_DIR=partials
    """

    model_config = SettingsConfigDict(
        env_prefix="BLADERUNNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Output configuration
    safe_output: bool = Field(
        default=True,
        description="HTML-escape {{ }} interpolations (false emits raw echo)",
    )

    buffer: Optional[str] = Field(
        default=None,
        description="PHP function applied to the whole page output before it is echoed",
    )

    # Directory conventions shared with the PHP runtime layout
    includes_dir: str = Field(
        default="_includes",
        description="Directory holding @include and @component targets",
    )

    layouts_dir: str = Field(
        default="_layouts",
        description="Directory holding page layouts (front matter 'layout')",
    )

    plugins_dir: str = Field(
        default="_plugins",
        description="Directory of PHP scripts included before every page",
    )

    data_dir: str = Field(
        default="_data",
        description="Directory of PHP scripts returning page data",
    )

    # Build configuration
    source_pattern: str = Field(
        default="**/*.blade*",
        description="Glob (relative to inputdir) selecting template sources",
    )

    pygments_style: str = Field(
        default="monokai",
        description="Pygments style used by --highlight",
    )

    def directories_list(self) -> list[str]:
        """
        Names of the convention directories, in include/layout/plugin/data order.

        Example:
            >>> AppSettings().directories_list()
            ['_includes', '_layouts', '_plugins', '_data']
        """
        return [self.includes_dir, self.layouts_dir, self.plugins_dir, self.data_dir]


# Singleton instance - import this in your code
appsettings = AppSettings()
