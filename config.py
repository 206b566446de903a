import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///expensehub.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", 12))

    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in {"1", "true", "yes"}
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@expensehub.local")
    EMAIL_DELIVERY_ENABLED = os.environ.get("EMAIL_DELIVERY_ENABLED", "false").lower() in {"1", "true", "yes"}
    EMAIL_STUB_DELAY_SECONDS = float(os.environ.get("EMAIL_STUB_DELAY_SECONDS", 1.0))

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER")
    UPLOAD_URL_EXPIRY_SECONDS = int(os.environ.get("UPLOAD_URL_EXPIRY_SECONDS", 3600))
    MAX_RECEIPT_BYTES = int(os.environ.get("MAX_RECEIPT_BYTES", 10 * 1024 * 1024))

    EXCHANGE_API_URL = os.environ.get("EXCHANGE_API_URL", "https://api.exchangerate-api.com/v4/latest/{base}")


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    EMAIL_DELIVERY_ENABLED = False
    EMAIL_STUB_DELAY_SECONDS = 0
    MAIL_SUPPRESS_SEND = True


class ProductionConfig(Config):
    DEBUG = False


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
