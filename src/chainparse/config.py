"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainparse.errors import ConfigError

BRANCH_STRATEGIES = ("auto", "api", "clone")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    registry_zip_url: str = Field(
        alias="REGISTRY_ZIP_URL",
        default="https://github.com/cosmos/chain-registry/archive/refs/heads/master.zip",
    )
    descriptor_suffix: str = Field(alias="DESCRIPTOR_SUFFIX", default="chain.json")
    raw_content_base_url: str = Field(
        alias="RAW_CONTENT_BASE_URL", default="https://raw.githubusercontent.com"
    )
    github_api_base_url: str = Field(alias="GITHUB_API_BASE_URL", default="https://api.github.com")
    github_token: str = Field(alias="GITHUB_TOKEN", default="")

    # auto: repository API first, shallow clone when the API fails or is rate limited.
    default_branch_strategy: str = Field(alias="DEFAULT_BRANCH_STRATEGY", default="auto")
    git_clone_timeout_seconds: float = Field(alias="GIT_CLONE_TIMEOUT_SECONDS", default=30.0)
    git_clone_blob_limit: int = Field(alias="GIT_CLONE_BLOB_LIMIT", default=40)

    http_timeout_seconds: float = Field(alias="HTTP_TIMEOUT_SECONDS", default=60.0)
    # 0 dispatches every chain at once.
    max_concurrent_projects: int = Field(alias="MAX_CONCURRENT_PROJECTS", default=0)


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.default_branch_strategy not in BRANCH_STRATEGIES:
        problems.append(
            "DEFAULT_BRANCH_STRATEGY(one of " + ", ".join(BRANCH_STRATEGIES) + ")"
        )
    if settings.git_clone_timeout_seconds <= 0:
        problems.append("GIT_CLONE_TIMEOUT_SECONDS(> 0)")
    if settings.git_clone_blob_limit < 0:
        problems.append("GIT_CLONE_BLOB_LIMIT(>= 0)")
    if settings.http_timeout_seconds <= 0:
        problems.append("HTTP_TIMEOUT_SECONDS(> 0)")
    if settings.max_concurrent_projects < 0:
        problems.append("MAX_CONCURRENT_PROJECTS(>= 0)")
    if not settings.descriptor_suffix.strip():
        problems.append("DESCRIPTOR_SUFFIX")
    if problems:
        raise ConfigError(f"invalid configuration: {', '.join(problems)}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
