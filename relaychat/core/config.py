from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    UPLOAD_DIR: str = "uploads"          # folder on disk
    UPLOAD_BASE_URL: str = "/uploads"    # URL prefix to serve files from

    # reject chat/signaling from connections that never joined
    REQUIRE_JOIN: bool = True


settings = Settings()
