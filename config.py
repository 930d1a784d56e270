import os

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # dotenv is optional for production, but useful locally

class Settings:
    # --- Database ---
    DATABASE_URL = os.environ.get("DATABASE_URL")
    DATABASE_PUBLIC_URL = os.environ.get("DATABASE_PUBLIC_URL")

    # --- Redis (Celery broker + result backend) ---
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

    # --- Telnyx (WhatsApp channel) ---
    TELNYX_API_KEY = os.environ.get("TELNYX_API_KEY")
    TELNYX_FROM_NUMBER = os.environ.get("TELNYX_FROM_NUMBER")
    TELNYX_MESSAGING_PROFILE_ID = os.environ.get("TELNYX_MESSAGING_PROFILE_ID")

    # --- SMTP (email channel) ---
    SMTP_HOST = os.environ.get("SMTP_HOST")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USERNAME = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    SMTP_FROM_ADDRESS = os.environ.get("SMTP_FROM_ADDRESS", "compliance@localhost")
    SMTP_TIMEOUT = int(os.environ.get("SMTP_TIMEOUT", "30"))

    # --- Object storage (event documents, payment proofs) ---
    S3_BUCKET = os.environ.get("S3_BUCKET")

    # --- Logging / time ---
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "UTC")

    # --- Audit actor used by unattended jobs ---
    SYSTEM_ACTOR_ID = os.environ.get(
        "SYSTEM_ACTOR_ID", "00000000-0000-0000-0000-000000000000"
    )

    # --- Reminder dispatch policy ---
    REMINDER_BATCH_SIZE = int(os.environ.get("REMINDER_BATCH_SIZE", "100"))
    REMINDER_MAX_RETRIES = int(os.environ.get("REMINDER_MAX_RETRIES", "3"))
    REMINDER_RETRY_DELAY_MINUTES = int(os.environ.get("REMINDER_RETRY_DELAY_MINUTES", "60"))
    SENT_REMINDER_RETENTION_DAYS = int(os.environ.get("SENT_REMINDER_RETENTION_DAYS", "90"))

    # --- Periodic jobs ---
    JOB_LEASE_SECONDS = int(os.environ.get("JOB_LEASE_SECONDS", "3300"))
    ARCHIVE_AFTER_DAYS = int(os.environ.get("ARCHIVE_AFTER_DAYS", "365"))

    # --- Listing defaults ---
    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

settings = Settings()
