import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
    SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
    DATABASE_URL = os.getenv("DATABASE_URL")
    STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "files")
    SIGNED_URL_TTL = int(os.getenv("SIGNED_URL_TTL", "60"))
    PUBLIC_LINK_TTL = int(os.getenv("PUBLIC_LINK_TTL", "31536000"))  # 1 year
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "False").lower() == "true"
    DEBUG = os.getenv("DEBUG", "False").lower() == "true"
    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")

    REQUIRED = ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "DATABASE_URL")

    def require(self):
        missing = [name for name in self.REQUIRED if not getattr(self, name)]
        if missing:
            raise RuntimeError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Check the .env file in the project root."
            )


settings = Settings()
