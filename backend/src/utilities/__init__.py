from .constants import CHANNEL_CAPACITY, HEARTBEAT_INTERVAL, ROOM_MAX_LENGTH, USERNAME_MAX_LENGTH
from .config import Settings, get_settings
from .logging_config import configure_logging
from .utility_functions import make_event, make_heartbeat, now_ts
