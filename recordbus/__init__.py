"""Recordbus: mutation hooks from a record store, published to MQTT.

Every create/update/delete on an allow-listed collection becomes one MQTT
message per affected record, on the topic
``<prefix>/<collection>/<creator>/<operation>``.  The creator is read
from the record itself; when that lookup is unavailable or fails, the
acting user (or ``unknown``) is used instead.
"""

__version__ = "0.1.0"
__description__ = "Record-store mutation hooks bridged to MQTT topics"

from recordbus.core.dispatcher import FanOutDispatcher
from recordbus.core.service import BridgeService
from recordbus.core.topics import build_topic
from recordbus.models.events import EnrichedMessage, MutationEvent, Operation

__all__ = [
    "BridgeService",
    "EnrichedMessage",
    "FanOutDispatcher",
    "MutationEvent",
    "Operation",
    "build_topic",
    "__version__",
]
