from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "HaoChapChap API"
    VERSION: str = "2.0.0"
    API_V2_PREFIX: str = "/api/v2"

    # Database (required)
    DATABASE_URL: str
    DB_ECHO: bool = False

    # JWT (required)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # Logging
    LOG_LEVEL: str = "INFO"

    # Media: "local" keeps files under UPLOAD_DIR, "cloudinary" uses the hosted API
    MEDIA_BACKEND: str = "local"
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB
    MAX_UPLOAD_FILES: int = 10
    MEDIA_TIMEOUT_SECONDS: float = 30.0
    # Hosts LocalMediaStore may fetch remote URLs from, comma-separated; empty refuses remote URLs
    MEDIA_REMOTE_HOSTS: str = ""

    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_API_URL: str = "https://api.cloudinary.com/v1_1"

    # Mail
    MAIL_API_URL: str = ""
    MAIL_API_KEY: str = ""
    MAIL_FROM: str = "HaoChapChap <no-reply@haochapchap.com>"

    # Reviews
    REVIEW_REQUIRE_ORDER_OWNER: bool = True
    REVIEW_WRITE_RETRIES: int = 3

    # CORS
    ALLOWED_ORIGINS: str = "https://haochapchap-punr.vercel.app,http://localhost:5173"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def media_remote_hosts(self) -> list[str]:
        return [h.strip() for h in self.MEDIA_REMOTE_HOSTS.split(",") if h.strip()]

    @property
    def cors_origins(self) -> list[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


settings = Settings()
