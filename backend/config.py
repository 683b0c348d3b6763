"""
backend.config
--------------
Environment-driven settings.  Values are read once at import, after `.env`
has been loaded.

SUPABASE_URL
SUPABASE_SERVICE_ROLE_KEY   (or SUPABASE_KEY / SUPABASE_ANON_KEY for local dev)
LOG_LEVEL                   default INFO
OPTIONAL_LIST_FIELD         settings key holding toggled-on optional fields
FORM_PATH                   dotted prefix of required fields inside settings
CONSOLE_USER_ID             user whose agents and tools the console edits
"""
from dotenv import load_dotenv
load_dotenv()  # pulls vars from .env

import os

SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = (
    os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    or os.environ.get("SUPABASE_KEY")
    or os.environ.get("SUPABASE_ANON_KEY")
)

LOG_LEVEL           = os.getenv("LOG_LEVEL", "INFO")
OPTIONAL_LIST_FIELD = os.getenv("OPTIONAL_LIST_FIELD", "optionalFields")
FORM_PATH           = os.getenv("FORM_PATH", "config.")
CONSOLE_USER_ID     = os.getenv("CONSOLE_USER_ID", "")
