import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # canonical shipping policy: free above the threshold, flat fee otherwise
    SHIPPING_FREE_THRESHOLD = os.getenv("SHIPPING_FREE_THRESHOLD", "500")
    SHIPPING_FLAT_FEE = os.getenv("SHIPPING_FLAT_FEE", "50")

    PAYU_MERCHANT_KEY = os.getenv("PAYU_MERCHANT_KEY")
    PAYU_SALT = os.getenv("PAYU_SALT")
    PAYU_URL = os.getenv("PAYU_URL", "https://secure.payu.in/_payment")
    SITE_URL = os.getenv("SITE_URL", "http://localhost:5173")

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    PAYU_MERCHANT_KEY = "test-key"
    PAYU_SALT = "test-salt"
    SITE_URL = "https://shop.example"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
