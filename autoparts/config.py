# autoparts/config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'autoparts-secret-key-here')
SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', "sqlite:///autoparts.db")  # Postgres in production
SQLALCHEMY_TRACK_MODIFICATIONS = False
CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',') if o.strip()]

# Clerk issues the session tokens; we only verify them
CLERK_JWKS_URL = os.getenv('CLERK_JWKS_URL', '')
CLERK_ISSUER = os.getenv('CLERK_ISSUER', '')

# Fallbacks only; the app_settings row wins when present
DEFAULT_TAX_RATE = os.getenv('DEFAULT_TAX_RATE', '0.08')
DEFAULT_SHIPPING_COST = os.getenv('DEFAULT_SHIPPING_COST', '9.99')
DEFAULT_FREE_SHIPPING_THRESHOLD = os.getenv('DEFAULT_FREE_SHIPPING_THRESHOLD', '100.00')
DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'AED')

STORE_TIMEZONE = os.getenv('STORE_TIMEZONE', 'Asia/Dubai')
LOW_STOCK_THRESHOLD = int(os.getenv('LOW_STOCK_THRESHOLD', 10))

MAIL_SERVER = os.getenv('MAIL_SERVER', '')
MAIL_PORT = int(os.getenv('MAIL_PORT', 587))
MAIL_USE_TLS = os.getenv('MAIL_USE_TLS', '1') in ['1', 'true', 'True']
MAIL_USERNAME = os.getenv('MAIL_USERNAME', '')
MAIL_PASSWORD = os.getenv('MAIL_PASSWORD', '')
MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'orders@autoparts.local')
