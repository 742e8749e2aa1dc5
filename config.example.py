# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.example.
Unprefixed names in parentheses are accepted as fallbacks.
"""

ENV_VARS = {
    # App / logging
    "INCLUDED_APP_NAME": "App display name (default: included).",
    "INCLUDED_LOG_LEVEL": "Console logging level (default: INFO).",
    "INCLUDED_ENV": "Environment name (NODE_ENV); 'production' hides internal error text in task output.",
    # Connectors
    "INCLUDED_CONSOLE_ENABLED": "Enable the operator console (true/false, default: true).",
    # Paths (gitignored)
    "INCLUDED_DATA_DIR": "Local data directory (default: .local/included).",
    "INCLUDED_DB_PATH": "SQLite database path (default: <data_dir>/included.sqlite3).",
    # Summarization (OpenAI-compatible)
    "INCLUDED_OPENAI_API_KEY": "LLM API key (OPENAI_API_KEY). Missing => offline summaries.",
    "INCLUDED_OPENAI_BASE_URL": "LLM base URL (default: https://api.openai.com/v1).",
    "INCLUDED_LLM_MODELS": "Comma/space separated list of models to try in order (default: gpt-5-mini).",
    "INCLUDED_LLM_CONNECT_TIMEOUT_SECONDS": "LLM connect timeout (default: 5).",
    "INCLUDED_LLM_READ_TIMEOUT_SECONDS": "LLM read timeout (default: 60).",
    "INCLUDED_SUMMARIZATION_MAX_ATTEMPTS": "Attempts per task (default: 3).",
    "INCLUDED_SUMMARIZATION_BASE_DELAY_SECONDS": "First backoff delay (default: 1).",
    "INCLUDED_SUMMARIZATION_MAX_DELAY_SECONDS": "Backoff cap (default: 10).",
    # Email delivery (Resend)
    "INCLUDED_RESEND_API_KEY": "Resend API key (RESEND_API_KEY). Missing => emails are only logged.",
    "INCLUDED_RESEND_BASE_URL": "Resend base URL (default: https://api.resend.com).",
    "INCLUDED_EMAIL_FROM": "Sender address (FROM_EMAIL).",
    "INCLUDED_DELIVERY_TIMEOUT_SECONDS": "HTTP timeout per send (default: 15).",
    "INCLUDED_DELIVERY_MAX_ATTEMPTS": "Attempts per notification (default: 3).",
    "INCLUDED_DELIVERY_BASE_DELAY_SECONDS": "First backoff delay (default: 1).",
    "INCLUDED_DELIVERY_MAX_DELAY_SECONDS": "Backoff cap (default: 10).",
    # Sweepers
    "INCLUDED_NOTIFICATION_BATCH_SIZE": "Events per sweep, 1..100; anything else => 10.",
    "INCLUDED_NOTIFICATION_POLL_SECONDS": "Notification sweep interval (default: 10).",
    "INCLUDED_NOTIFICATION_SEND_DELAY_SECONDS": "Pause between sends in a batch (default: 0.5).",
    "INCLUDED_RECOVERY_BATCH_SIZE": "Pending tasks re-driven per sweep (default: 10).",
    "INCLUDED_RECOVERY_POLL_SECONDS": "Recovery sweep interval (default: 60).",
    # Routing / fan-out / reports
    "INCLUDED_INBOUND_EMAIL_DOMAIN": "Domain of tenant routing addresses (INBOUND_EMAIL_DOMAIN).",
    "INCLUDED_INBOUND_EMAIL_PREFIX": "Local-part prefix before the tenant id (default: client_).",
    "INCLUDED_NOTIFICATION_CHANNELS": "Channels recorded per summary (default: email whatsapp).",
    "INCLUDED_REPORT_NEWEST_FIRST": "Report ordering (true/false, default: true).",
}
