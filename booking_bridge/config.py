"""Runtime settings, read once from the environment (and a local .env)."""
import os

from dotenv import load_dotenv

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
BOOKING_CHANNEL = os.getenv("BOOKING_CHANNEL", "demo-room")

RETELL_BASE_URL = os.getenv("RETELL_BASE_URL", "https://api.retellai.com")
RETELL_API_KEY = os.getenv("RETELL_API_KEY")
RETELL_AGENT_ID = os.getenv("RETELL_AGENT_ID")

WEBHOOK_ERROR_LOG = os.getenv("WEBHOOK_ERROR_LOG", "webhook-error.log")
