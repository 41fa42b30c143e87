"""
Shared enumerations used across the entire project.

Using Python enums (inheriting from str) means:
- They serialize to JSON automatically ("online", not "PrinterStatus.ONLINE")
- They compare equal to the raw strings the backend sends
- Typos become immediate errors instead of silent bugs
"""

import enum


class PrinterStatus(str, enum.Enum):
    ONLINE = "online"      # accepting jobs
    OFFLINE = "offline"    # unreachable or paused
    ERROR = "error"        # needs attention (paper jam, toner, ...)
    BUSY = "busy"          # printing


class JobStatus(str, enum.Enum):
    PENDING = "pending"          # accepted by the backend, waiting for a printer
    PROCESSING = "processing"    # being spooled / printed, progress is meaningful
    COMPLETED = "completed"      # terminal
    FAILED = "failed"            # terminal
    CANCELLED = "cancelled"      # terminal

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class UploadStatus(str, enum.Enum):
    READY = "ready"              # queued locally, nothing sent yet
    UPLOADING = "uploading"      # multipart request in flight
    PROCESSING = "processing"    # backend created the job
    ERROR = "error"              # submission failed


class Orientation(str, enum.Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class ColorMode(str, enum.Enum):
    COLOR = "color"
    GRAYSCALE = "grayscale"
    MONOCHROME = "monochrome"
    AUTO = "auto"


class Duplex(str, enum.Enum):
    NONE = "none"
    SHORT_EDGE = "short-edge"
    LONG_EDGE = "long-edge"


class Quality(str, enum.Enum):
    DRAFT = "draft"
    NORMAL = "normal"
    HIGH = "high"


class SystemHealth(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    DEGRADED = "degraded"


class NotificationType(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class EventType(str, enum.Enum):
    PRINTER_STATUS_UPDATE = "printer_status_update"
    JOB_PROGRESS_UPDATE = "job_progress_update"
    SYSTEM_METRICS = "system_metrics"
    NOTIFICATION = "notification"


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"  # never connected, or disconnect() called
    CONNECTING = "connecting"      # first open in progress
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"  # waiting out a backoff delay
    LOST = "lost"                  # reconnect attempts exhausted
