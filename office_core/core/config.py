from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./office.db"
    database_echo: bool = False

    host: str = "127.0.0.1"
    port: int = 8000

    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    # Границы адресуемой сетки таблицы
    grid_columns: int = 26
    grid_rows: int = 100

    # AI-ассистент
    assistant_api_url: str = "https://api.anthropic.com/v1/messages"
    assistant_api_version: str = "2023-06-01"
    assistant_max_tokens: int = 1000
    assistant_timeout: float = 60.0

    model_config = {"env_file": ".env", "env_prefix": "OFFICE_", "extra": "ignore"}


settings = AppSettings()
