# config.py
import os
from dataclasses import dataclass

from errors import ConfigurationError
from oauth import Credentials


NETSUITE_ENV = {
    "account_id": "NETSUITE_PROD_ACCOUNT_ID",
    "consumer_key": "NETSUITE_PROD_CONSUMER_KEY",
    "consumer_secret": "NETSUITE_PROD_CONSUMER_SECRET",
    "token_id": "NETSUITE_PROD_TOKEN_ID",
    "token_secret": "NETSUITE_PROD_TOKEN_SECRET",
    "restlet_url": "NETSUITE_PROD_RESTLET_URL",
}

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))
HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", "3"))

LOGS_DIR = os.getenv("LOGS_DIR", "logs")
ERRORS_DIR = os.getenv("ERRORS_DIR", "errors")

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
USER_AGENT = "NetSuite-DueDateAnalyzer/1.0"


@dataclass(frozen=True)
class NetSuiteConfig:
    account_id: str
    restlet_url: str
    credentials: Credentials


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def load_netsuite_config() -> NetSuiteConfig:
    values = {field: os.getenv(env_name) for field, env_name in NETSUITE_ENV.items()}
    missing = [NETSUITE_ENV[field] for field, value in values.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    credentials = Credentials(
        consumer_key=values["consumer_key"],
        consumer_secret=values["consumer_secret"],
        token_id=values["token_id"],
        token_secret=values["token_secret"],
        realm=values["account_id"],
    )
    return NetSuiteConfig(
        account_id=values["account_id"],
        restlet_url=values["restlet_url"],
        credentials=credentials,
    )


def load_gemini_api_key() -> str:
    return _require_env("GEMINI_API_KEY")
