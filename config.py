import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Application environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = ENVIRONMENT == "development"

# Database settings
DATABASE_URL = os.getenv("DATABASE_URL")
TESTING = os.getenv("TESTING", "false").lower() == "true"
DB_LOCK_TIMEOUT_MS = int(os.getenv("DB_LOCK_TIMEOUT_MS", "3000"))  # bounded wait for wallet row locks
DB_RETRY_AFTER_SECONDS = int(os.getenv("DB_RETRY_AFTER_SECONDS", "1"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Application settings
APP_NAME = "EarnRewardzz API"
APP_VERSION = "1.0.0"

# Redis settings
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Session tokens (identity provider)
SESSION_JWT_SECRET = os.getenv("SESSION_JWT_SECRET", "dev-session-secret-change-me")
SESSION_JWT_ALGORITHM = os.getenv("SESSION_JWT_ALGORITHM", "HS256")
SESSION_TOKEN_TTL_HOURS = int(os.getenv("SESSION_TOKEN_TTL_HOURS", "720"))  # 30 days
SESSION_JWT_LEEWAY = int(os.getenv("SESSION_JWT_LEEWAY", "60"))

# OTP settings
OTP_LENGTH = 6
OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", "5"))
OTP_HASH_ROUNDS = int(os.getenv("OTP_HASH_ROUNDS", "10"))
OTP_REQUESTS_PER_WINDOW = int(os.getenv("OTP_REQUESTS_PER_WINDOW", "5"))
OTP_REQUEST_WINDOW_SECONDS = int(os.getenv("OTP_REQUEST_WINDOW_SECONDS", "600"))

# Reward policy
REWARDS_TIMEZONE = os.getenv("REWARDS_TIMEZONE", "UTC")
DAILY_AD_CAP = int(os.getenv("DAILY_AD_CAP", "20"))
AD_REWARD_COINS = int(os.getenv("AD_REWARD_COINS", "1"))
DAILY_BONUS_SPINS = int(os.getenv("DAILY_BONUS_SPINS", "1"))
DAILY_TOKEN_EARN_CAP = int(os.getenv("DAILY_TOKEN_EARN_CAP", "1000"))
TOKEN_EARN_MAX_PER_CALL = int(os.getenv("TOKEN_EARN_MAX_PER_CALL", "100"))
TOKEN_EARN_SOURCES = [
    s.strip()
    for s in os.getenv("TOKEN_EARN_SOURCES", "daily_bonus").split(",")
    if s.strip()
]
# Spin wheel weights: "<outcome>:<weight>,..." where outcome is "<n>_tokens" or "try_again"
SPIN_WHEEL_WEIGHTS = os.getenv(
    "SPIN_WHEEL_WEIGHTS",
    "50_tokens:40,100_tokens:25,250_tokens:8,500_tokens:2,try_again:25",
)

# Referrals
REFERRAL_BONUS_TOKENS = int(os.getenv("REFERRAL_BONUS_TOKENS", "500"))
REFERRAL_CODE_SECRET = os.getenv("REFERRAL_CODE_SECRET", "dev-referral-secret")
REFERRAL_CODE_LENGTH = int(os.getenv("REFERRAL_CODE_LENGTH", "8"))

# Withdrawals and gifts
COINS_PER_USD = 500
MIN_WITHDRAWAL_USD = os.getenv("MIN_WITHDRAWAL_USD", "1.00")
WITHDRAWAL_METHODS = ["paypal", "upi"]
WITHDRAWAL_REQUIRES_LOCKED_PHONE = os.getenv("WITHDRAWAL_REQUIRES_LOCKED_PHONE", "true").lower() == "true"
WITHDRAWAL_SECRET_CODE_LENGTH = int(os.getenv("WITHDRAWAL_SECRET_CODE_LENGTH", "8"))
MIN_GIFT_COINS = int(os.getenv("MIN_GIFT_COINS", "1"))

# Giveaways
GIVEAWAY_MAX_TICKETS_PER_PURCHASE = int(os.getenv("GIVEAWAY_MAX_TICKETS_PER_PURCHASE", "100"))
GIVEAWAY_LIST_CACHE_SECONDS = float(os.getenv("GIVEAWAY_LIST_CACHE_SECONDS", "10"))

# Notifier (OTP email, admin alerts)
NOTIFIER_BACKEND = os.getenv("NOTIFIER_BACKEND", "log")  # "log" or "smtp"
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_TIMEOUT_SECONDS = int(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))
MAIL_FROM = os.getenv("MAIL_FROM", "EarnRewardzz <no-reply@earnrewardzz.app>")
ADMIN_ALERT_EMAIL = os.getenv("ADMIN_ALERT_EMAIL", "")

# Admin operations
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")
