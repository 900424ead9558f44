from enum import Enum


class Platform(str, Enum):
    ios = "ios"
    android = "android"


class Target(str, Enum):
    # Audit label only; token partitioning is always explicit per platform.
    all = "all"
    ios = "ios"
    android = "android"


class DeliveryStatus(str, Enum):
    success = "success"
    partial = "partial"
    failed = "failed"
