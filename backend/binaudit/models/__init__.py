from .auth import User, SessionToken
from .security import SecurityEvent
from .warehouse import BinMaster
from .counting import CountingSession, CountingRecord, WorkerEfficiency
from .otp import OTPRequest

__all__ = [
    'User', 'SessionToken', 'SecurityEvent',
    'BinMaster',
    'CountingSession', 'CountingRecord', 'WorkerEfficiency',
    'OTPRequest',
]
