from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "payslips"
    db_username: str = "payslips"
    db_password: str = "secret"

    encryption_engine: str = "pymupdf"
    qpdf_binary: str = "qpdf"
    qpdf_timeout_seconds: int = 30

    email_provider: str = "smtp"
    sender_email: str = "finance@company.example"

    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_secure: bool = False
    smtp_starttls: bool = True
    smtp_timeout_seconds: int = 30

    azure_tenant_id: str = ""
    azure_client_id: str = ""
    azure_client_secret: str = ""
    graph_timeout_seconds: int = 30
    graph_save_to_sent_items: bool = True

    notification_signature: str = "Finance"

    batch_max_workers: int = 1
