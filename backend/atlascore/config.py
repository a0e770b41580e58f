import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./atlascore.db")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
RESET_TOKEN_MINUTES = int(os.getenv("RESET_TOKEN_MINUTES", "15"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Settlement currency every order is converted to before payment
STORE_CURRENCY = os.getenv("STORE_CURRENCY", "USD")
FX_API_URL = os.getenv("FX_API_URL", "https://open.er-api.com/v6/latest")
FX_TIMEOUT = float(os.getenv("FX_TIMEOUT", "15"))

PAYPAL_MODE = os.getenv("PAYPAL_MODE", "sandbox")
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
PAYPAL_SECRET = os.getenv("PAYPAL_SECRET")
PAYPAL_API_URL = "https://api-m.paypal.com" if PAYPAL_MODE == "live" else "https://api-m.sandbox.paypal.com"
SIMULATED_PAYMENT_DELAY = float(os.getenv("SIMULATED_PAYMENT_DELAY", "1"))

PLUGIN_API_URL = os.getenv("PLUGIN_API_URL", f"http://localhost:{os.getenv('WEBHOOK_PORT', '4567')}")
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")
PLUGIN_TIMEOUT = float(os.getenv("PLUGIN_TIMEOUT", "10"))

# Shared secret the plugin puts in the body of server-to-server calls
STATS_SECRET = os.getenv("STATS_SECRET")
SERVER_OFFLINE_AFTER = int(os.getenv("SERVER_OFFLINE_AFTER", "90"))
