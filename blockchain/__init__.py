"""DID registry access over web3"""

from .events import ChangeEvent, EventKind
from .change_log import ChangeLog, change_log

__all__ = [
    'ChangeEvent',
    'EventKind',
    'ChangeLog',
    'change_log'
]
