# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit the backend anon key or admin emails of a real deployment. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "WGP_APP_NAME": "App display name (default: Work Grand Prix).",
    "WGP_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "WGP_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # Local storage (gitignored)
    "WGP_DATA_DIR": "Local data directory for the JSON store and logs (default: .local/wgp).",
    "WGP_STORAGE_KEY": "Key of the whole-document blob (default: workGrandPrixData).",
    "WGP_CURRENT_USER_KEY": "Key of the remembered login (default: workGrandPrixCurrentUser).",
    "WGP_CHANNEL_NAME": "Broadcast channel name shared by sessions (default: workGrandPrixChannel).",
    # Race rules
    "WGP_SECTOR_MINUTES": "Sector length in minutes (default: 45).",
    "WGP_MIN_TASKS": "Minimum tasks per sector (default: 4).",
    "WGP_MAX_TASKS": "Maximum tasks per sector (default: 15).",
    "WGP_LEADERBOARD_MODE": "time (fastest weekly total) or points (finish bonus) (default: time).",
    "WGP_FINISH_BONUS_POINTS": "Points per finished task in points mode (default: 10).",
    # Ticker / start lights
    "WGP_TICK_SECONDS": "Display refresh interval (default: 1.0).",
    "WGP_IGNITION_STEPS": "Number of start lights (default: 5).",
    "WGP_IGNITION_STEP_SECONDS": "Seconds per light (default: 1.0).",
    "WGP_IGNITION_HOLD_SECONDS": "Hold before lights out (default: 0.5).",
    # Hosted backend (Supabase-compatible); empty => local only
    "WGP_BACKEND_URL": "Project URL (SUPABASE_URL is accepted too).",
    "WGP_BACKEND_ANON_KEY": "Anon key (SUPABASE_ANON_KEY is accepted too).",
    "WGP_BACKEND_TIMEOUT_SECONDS": "HTTP timeout (default: 10).",
    "WGP_PSEUDO_EMAIL_DOMAIN": "Domain of username accounts' pseudo-emails (default: wgp.local).",
    "WGP_ADMIN_EMAILS": "Comma/space separated emails that get the admin role on sign-up.",
}
