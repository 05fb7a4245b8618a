"""
MasterClass Configuration
Supports AWS Parameter Store for production secrets
"""
import os
from functools import lru_cache

import boto3


def get_parameter(name: str, default: str = "") -> str:
    """Get parameter from AWS Parameter Store or environment"""
    # Environment variable takes precedence
    env_key = name.upper().replace("-", "_").replace("/", "_")
    if env_key in os.environ:
        return os.environ[env_key]

    if os.environ.get("USE_PARAMETER_STORE"):
        try:
            ssm = boto3.client("ssm", region_name=os.environ.get("AWS_REGION", "us-west-2"))
            path = os.environ.get("PARAMETER_STORE_PATH", "/masterclass/prod/")
            response = ssm.get_parameter(Name=f"{path}{name}", WithDecryption=True)
            return response["Parameter"]["Value"]
        except Exception as e:
            print(f"Warning: Could not load {name} from Parameter Store: {e}")

    return default


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///masterclass.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Fix Render's postgres:// URL
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql://", 1)

    # Security
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600

    # Public URL of the frontend, used for checkout redirects
    APP_URL = os.environ.get("APP_URL") or os.environ.get("NEXT_PUBLIC_APP_URL", "")

    # Clerk
    CLERK_WEBHOOK_SECRET = os.environ.get("CLERK_WEBHOOK_SECRET", "")
    CLERK_JWKS_URL = os.environ.get("CLERK_JWKS_URL", "")
    CLERK_ISSUER = os.environ.get("CLERK_ISSUER", "")
    CLERK_AUTHORIZED_PARTIES = [
        p.strip() for p in os.environ.get("CLERK_AUTHORIZED_PARTIES", "").split(",") if p.strip()
    ]

    # Stripe
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
    STRIPE_MONTHLY_PRICE_ID = os.environ.get("STRIPE_MONTHLY_PRICE_ID", "")
    STRIPE_YEARLY_PRICE_ID = os.environ.get("STRIPE_YEARLY_PRICE_ID", "")

    # Resend
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    WELCOME_EMAIL_FROM = os.environ.get("WELCOME_EMAIL_FROM", "MasterClass <onboarding@resend.dev>")
    SEND_WELCOME_EMAIL = _env_flag("SEND_WELCOME_EMAIL")

    # Rate Limiting
    RATELIMIT_STORAGE_URL = os.environ.get("REDIS_URL", "memory://")
    RATELIMIT_CHECKOUT = os.environ.get("RATELIMIT_CHECKOUT", "10 per 10 seconds")

    # App Version
    APP_VERSION = os.environ.get("APP_VERSION", "2026.10")
    BUILD_TIME = os.environ.get("BUILD_TIME", "")
    GIT_COMMIT = os.environ.get("GIT_COMMIT", "")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    SEND_WELCOME_EMAIL = _env_flag("SEND_WELCOME_EMAIL", "1")


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Override with Parameter Store in production
    SECRET_KEY = get_parameter("secret-key", Config.SECRET_KEY)
    CLERK_WEBHOOK_SECRET = get_parameter("clerk-webhook-secret", Config.CLERK_WEBHOOK_SECRET)
    STRIPE_SECRET_KEY = get_parameter("stripe-secret-key", Config.STRIPE_SECRET_KEY)
    STRIPE_WEBHOOK_SECRET = get_parameter("stripe-webhook-secret", Config.STRIPE_WEBHOOK_SECRET)
    RESEND_API_KEY = get_parameter("resend-api-key", Config.RESEND_API_KEY)


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False

    APP_URL = "https://masterclass.test"
    CLERK_WEBHOOK_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"
    CLERK_JWKS_URL = "https://clerk.masterclass.test/.well-known/jwks.json"
    CLERK_ISSUER = "https://clerk.masterclass.test"
    CLERK_AUTHORIZED_PARTIES = []
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_stripe_test"
    STRIPE_MONTHLY_PRICE_ID = "price_pro_monthly"
    STRIPE_YEARLY_PRICE_ID = "price_pro_yearly"
    RESEND_API_KEY = "re_test_dummy"
    SEND_WELCOME_EMAIL = True
    RATELIMIT_STORAGE_URL = "memory://"
    RATELIMIT_CHECKOUT = "3 per minute"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


@lru_cache()
def get_config(env: str = None):
    """Get configuration by environment name"""
    env = env or os.environ.get("FLASK_ENV", "development")
    return config.get(env, DevelopmentConfig)
