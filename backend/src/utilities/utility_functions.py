from datetime import datetime, timezone

from pydantic import BaseModel

def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat()

# Server -> client frames are built as text/event-stream records
def make_event(message: BaseModel) -> str:
    return f"data:{message.model_dump_json()}\n\n"

def make_heartbeat() -> str:
    # comment line, ignored by EventSource clients
    return ":\n\n"
