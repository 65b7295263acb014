import os


def _env_bool(name, default=""):
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or "sqlite:///donations.db"

    # --- Stripe ---
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_TIMEOUT = int(os.environ.get("STRIPE_TIMEOUT", 20))

    # --- Public site ---
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:5173")
    CORS_ORIGIN = os.environ.get("CORS_ORIGIN") or PUBLIC_BASE_URL

    # --- Donation rules (amounts in minor currency units) ---
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "usd").lower()
    MIN_DONATION_AMOUNT = int(os.environ.get("MIN_DONATION_AMOUNT", 100))
    MAX_DONATION_AMOUNT = int(os.environ.get("MAX_DONATION_AMOUNT", 99999999))

    # --- LLM (OpenAI chat completions) ---
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_API_BASE = os.environ.get("OPENAI_API_BASE", "https://api.openai.com/v1")
    OPENAI_TIMEOUT = int(os.environ.get("OPENAI_TIMEOUT", 30))

    # --- Email (SMTP) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL")                 # SMTP_SSL instead of STARTTLS
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Donations")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME
    MAIL_SMTP_TIMEOUT = int(os.environ.get("MAIL_SMTP_TIMEOUT", 30))

    # --- Sanity CMS (optional) ---
    SANITY_PROJECT_ID = os.environ.get("SANITY_PROJECT_ID")
    SANITY_DATASET = os.environ.get("SANITY_DATASET")
    SANITY_TOKEN = os.environ.get("SANITY_TOKEN")            # write token, only for impact entries
    SANITY_API_VERSION = os.environ.get("SANITY_API_VERSION", "2023-10-10")
    SANITY_TIMEOUT = int(os.environ.get("SANITY_TIMEOUT", 10))

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
            "PUBLIC_BASE_URL",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SECRET_KEY = Config.SECRET_KEY or "dev-secret-key"
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled, collaborators unconfigured."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    STRIPE_SECRET_KEY = "sk_test_fake"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    PUBLIC_BASE_URL = "http://localhost:5173"
    CORS_ORIGIN = "http://localhost:5173"
    DEFAULT_CURRENCY = "usd"
    MIN_DONATION_AMOUNT = 100
    MAX_DONATION_AMOUNT = 99999999
    OPENAI_API_KEY = "sk-test-fake"
    MAIL_USERNAME = "donations@example.org"
    MAIL_PASSWORD = "test-password"
    MAIL_FROM_ADDRESS = "donations@example.org"
    MAIL_USE_SSL = False
    SANITY_PROJECT_ID = None  # CMS off by default; tests opt in
    SANITY_DATASET = None
    SANITY_TOKEN = None
    WTF_CSRF_ENABLED = False  # disable CSRF for test forms
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
