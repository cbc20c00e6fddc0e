class RecvError(Exception):
    ''' Base for the conditions a subscription reports instead of a message.'''


class Lagged(RecvError):
    ''' The subscriber fell behind and `skipped` messages were overwritten; keep receiving.'''

    def __init__(self, skipped: int):
        super().__init__(f"subscriber lagged behind, {skipped} messages skipped")
        self.skipped = skipped


class HubClosed(RecvError):
    ''' The hub (or this subscription) is closed; nothing more will arrive.'''

    def __init__(self):
        super().__init__("broadcast hub closed")


class Empty(RecvError):
    ''' Raised by try_recv when no message is ready.'''
