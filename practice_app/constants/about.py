"""Static metadata describing the practice engine."""

APP_NAME = "IELTS Practice Engine"
APP_VERSION = "0.1"
