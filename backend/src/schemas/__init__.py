from .schemas import Message
