# ------------ Config ------------
CHANNEL_CAPACITY = 1024       # shared ring buffer slots for the broadcast hub
ROOM_MAX_LENGTH = 30          # inclusive bound on Message.room
USERNAME_MAX_LENGTH = 20      # inclusive bound on Message.username
HEARTBEAT_INTERVAL = 30       # seconds between SSE keep-alive comments (0 disables)
# --------------------------------
