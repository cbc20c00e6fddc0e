import os

# settings are read once at import of main; keep the ring small and streams quiet
os.environ.setdefault("CHAT_CHANNEL_CAPACITY", "8")
os.environ.setdefault("CHAT_HEARTBEAT_INTERVAL", "0")
