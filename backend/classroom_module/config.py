import os
from dataclasses import dataclass


BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass(frozen=True)
class Settings:
    backend_host: str = os.getenv("BACKEND_HOST", "127.0.0.1")
    backend_port: int = int(os.getenv("BACKEND_PORT", os.getenv("PORT", "3001")))
    database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'classroom.db')}")
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me-in-production")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_exp_minutes: int = int(os.getenv("JWT_EXP_MINUTES", str(7 * 24 * 60)))
    reset_token_exp_minutes: int = int(os.getenv("RESET_TOKEN_EXP_MINUTES", "60"))
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    smtp_host: str = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str = os.getenv("SMTP_EMAIL", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "").replace(" ", "")
    smtp_from_email: str = os.getenv("SMTP_FROM_EMAIL", os.getenv("SMTP_EMAIL", ""))
    upload_dir: str = os.getenv("UPLOAD_DIR", os.path.join(BASE_DIR, "uploads", "assignments"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    max_upload_files: int = int(os.getenv("MAX_UPLOAD_FILES", "10"))
    default_admin_email: str = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@school.local")
    default_admin_password: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "ChangeMe@123")


settings = Settings()
