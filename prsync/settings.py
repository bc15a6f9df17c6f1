"""Environment settings: GitHub credentials and transport knobs."""

import typer
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

GITHUB_AUTH_METHODS = ("token", "gh-cli")


class PrsyncSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PRSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # GITHUB_TOKEN is what Actions and most CI systems export
    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("github_token", "PRSYNC_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    github_auth: str = "token"  # "token" | "gh-cli"

    # Applied to every request; there are no retries
    http_timeout: float = 15.0


def get_settings() -> PrsyncSettings:
    """Load settings from the environment (and .env) and validate credentials.

    Prints a hint and exits with status 1 when no usable credentials are configured.
    """
    settings = PrsyncSettings()

    if settings.github_auth not in GITHUB_AUTH_METHODS:
        typer.echo(f"Unknown github_auth '{settings.github_auth}'. Valid: {', '.join(GITHUB_AUTH_METHODS)}")
        raise typer.Exit(1)
    if settings.github_auth == "token" and not settings.github_token:
        typer.echo(
            "Missing GitHub credentials. Set GITHUB_TOKEN (or PRSYNC_GITHUB_TOKEN), "
            "or set PRSYNC_GITHUB_AUTH=gh-cli to use the gh CLI."
        )
        raise typer.Exit(1)
    if settings.http_timeout <= 0:
        typer.echo("PRSYNC_HTTP_TIMEOUT must be a positive number of seconds")
        raise typer.Exit(1)

    return settings
