"""Deployment configuration: component tuning values, topology state and health pings."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from sysref.fw import FW_COM_BUFFER_MAX_SIZE, PACKET_DESCRIPTOR_SIZE

# Event logger: which severities are filtered at input by default.
FILTER_WARNING_HI_DEFAULT = True
FILTER_WARNING_LO_DEFAULT = True
FILTER_COMMAND_DEFAULT = True
FILTER_ACTIVITY_HI_DEFAULT = True
FILTER_ACTIVITY_LO_DEFAULT = True
FILTER_DIAGNOSTIC_DEFAULT = False
TELEM_ID_FILTER_SIZE = 25

# Rate groups: overruns allowed before the overrun event is throttled.
ACTIVE_RATE_GROUP_OVERRUN_THROTTLE = 5

# Buffer manager.
BUFFERMGR_MAX_NUM_BINS = 10

# Command dispatcher.
CMD_DISPATCHER_DISPATCH_TABLE_SIZE = 100
CMD_DISPATCHER_SEQUENCER_TABLE_SIZE = 25

# Deframer.
DEFRAMER_RING_BUFFER_SIZE = 1024
DEFRAMER_POLL_BUFFER_SIZE = 1024

# File downlink.
FILEDOWNLINK_PACKETS_BY_RUN = False
FILEDOWNLINK_COMMAND_FAILURES_DISABLED = True
FILEDOWNLINK_INTERNAL_BUFFER_SIZE = FW_COM_BUFFER_MAX_SIZE - PACKET_DESCRIPTOR_SIZE

# IP socket helpers.
SOCKET_SEND_TIMEOUT_SECONDS = 1
SOCKET_SEND_TIMEOUT_MICROSECONDS = 0
SOCKET_IP_SEND_FLAGS = 0
SOCKET_IP_RECV_FLAGS = 0
SOCKET_MAX_ITERATIONS = 0xFFFF
SOCKET_RETRY_INTERVAL_MS = 1000
SOCKET_MAX_HOSTNAME_SIZE = 256

# Polynomial database.
POLYDB_NUM_DB_ENTRIES = 25

# Parameter database.
PRMDB_NUM_DB_ENTRIES = 25
PRMDB_ENTRY_DELIMITER = 0xA5
PRMDB_IMPL_TESTER_MAX_READ_BUFFER = 256

# Socket IP driver.
KEEPALIVE_DATA = "sitting well"
SOCKET_TIMEOUT_SECONDS = 1
SOCKET_TIMEOUT_MICROSECONDS = 0
SOCKET_SEND_UDP = True
SOCKET_SEND_FLAGS = 0
SOCKET_RECV_FLAGS = 0
RECONNECT_AUTOMATICALLY = True
MAX_SEND_ITERATIONS = 0xFFFF
MAX_RECV_BUFFER_SIZE = 2048
PRE_CONNECTION_RETRY_INTERVAL_MS = 1000
MAX_HOSTNAME_SIZE = 256

# Static memory.
STATIC_MEMORY_ALLOCATION_SIZE = 2048

# Telemetry channel database hashing.
TLMCHAN_NUM_TLM_HASH_SLOTS = 15
TLMCHAN_HASH_MOD_VALUE = 99
TLMCHAN_HASH_BUCKETS = 50

# UDP sender and receiver.
UDP_RECEIVER_MSG_SIZE = 256
UDP_SENDER_MSG_SIZE = 256


@dataclass
class TopologyState:
    """State handed to topology construction: where the ground link connects."""

    host_name: str = ""
    port_number: int = 0


@dataclass(frozen=True)
class PingEntry:
    """Health-ping thresholds: missed pings before a warning and before a fatal."""

    warn: int
    fatal: int


_DEFAULT_PING = PingEntry(warn=3, fatal=5)

PING_ENTRIES: Mapping[str, PingEntry] = MappingProxyType(
    {
        name: _DEFAULT_PING
        for name in (
            "blockDrv",
            "chanTlm",
            "cmdDisp",
            "cmdSeq",
            "eventLogger",
            "fileDownlink",
            "fileManager",
            "fileUplink",
            "prmDb",
            "rateGroup1Comp",
            "rateGroup2Comp",
            "rateGroup3Comp",
            "saveImageBufferLogger",
            "imageProcessor",
            "processedImageBufferLogger",
        )
    }
)


def ping_entry(name: str) -> PingEntry:
    """Return the health-ping thresholds of the named component instance."""
    try:
        return PING_ENTRIES[name]
    except KeyError:
        raise KeyError(f"no health ping entry for component {name!r}") from None