"""Django settings for the governance dashboard backend.


The backend mirrors Governor proposals in a relational store:
- Off-chain drafts keyed by the on-chain proposal id → published after the propose tx confirms
- Live proposal state, votes and voting power are read from the Governor / token contracts


Contract addresses default to a local Hardhat deployment.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_bool(name, default=""):
    v = os.getenv(name, default)
    return v.lower() in ("1", "true", "yes", "on")

#######################
# JSON-RPC endpoint of the chain the governance contracts live on
GOVERNANCE_RPC_URL = os.getenv("GOVERNANCE_RPC_URL", "http://127.0.0.1:8545")
GOVERNANCE_RPC_TIMEOUT = int(os.getenv("GOVERNANCE_RPC_TIMEOUT", "30"))
# Seconds to wait for a receipt after sending a transaction
GOVERNANCE_TX_TIMEOUT = int(os.getenv("GOVERNANCE_TX_TIMEOUT", "120"))

GOVERNOR_ADDRESS = os.getenv("GOVERNOR_ADDRESS", "0xCf7Ed3AccA5a467e9e704C703E8D87F634fB0Fc9")
TOKEN_ADDRESS = os.getenv("TOKEN_ADDRESS", "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512")
TIMELOCK_ADDRESS = os.getenv("TIMELOCK_ADDRESS", "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0")

# Operator key used to sign chain writes. Empty => send from the node's first
# unlocked account (Hardhat / Anvil dev nodes only).
GOVERNANCE_SIGNER_PRIVATE_KEY = os.getenv("GOVERNANCE_SIGNER_PRIVATE_KEY", "")

# Fixed string the wallet signs to log in
AUTH_CHALLENGE_MESSAGE = os.getenv("AUTH_CHALLENGE_MESSAGE", "Please sign this message to authenticate")
#######################


INSTALLED_APPS = [
	"django.contrib.admin",
	"django.contrib.auth",
	"django.contrib.contenttypes",
	"django.contrib.sessions",
	"django.contrib.messages",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
]


MIDDLEWARE = [
	"api.middleware.RequestLogMiddleware",
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
	"api.middleware.JsonExceptionMiddleware",
]


ROOT_URLCONF = "gov_dashboard.urls"
TEMPLATES = [
	{
		"BACKEND": "django.template.backends.django.DjangoTemplates",
		"DIRS": [],
		"APP_DIRS": True,
		"OPTIONS": {
			"context_processors": [
				"django.template.context_processors.debug",
				"django.template.context_processors.request",
				"django.contrib.auth.context_processors.auth",
				"django.contrib.messages.context_processors.messages",
			],
		},
	},
]


WSGI_APPLICATION = "gov_dashboard.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "gov_dashboard"),
            "USER": os.getenv("POSTGRES_USER", "gov_dashboard"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "gov_dashboard"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


# Every record carries the id of the request that produced it ("-" outside a request)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"filters": {
		"request_id": {"()": "api.request_context.RequestIdFilter"},
	},
	"formatters": {
		"standard": {
			"format": "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
		},
	},
	"handlers": {
		"console": {
			"class": "logging.StreamHandler",
			"filters": ["request_id"],
			"formatter": "standard",
		},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"django.request": {"handlers": ["console"], "level": "ERROR", "propagate": False},
	},
}

if LOG_FILE:
	LOGGING["handlers"]["file"] = {
		"class": "logging.handlers.RotatingFileHandler",
		"filename": LOG_FILE,
		"maxBytes": 5 * 1024 * 1024,
		"backupCount": 5,
		"filters": ["request_id"],
		"formatter": "standard",
	}
	for _name in ("core", "api", "django.request"):
		LOGGING["loggers"][_name]["handlers"].append("file")


AUTH_PASSWORD_VALIDATORS = []

# Wallet login lives in the Django session
SESSION_COOKIE_SECURE = env_bool("SESSION_COOKIE_SECURE")
CSRF_COOKIE_SECURE = env_bool("CSRF_COOKIE_SECURE")


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
