from .errors import Empty, HubClosed, Lagged, RecvError
from .models import BroadcastHub, Shutdown, Subscription
