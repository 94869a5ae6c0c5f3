from enum import StrEnum


class EntryStatus(StrEnum):
    VALID = "valid"
    INVALID = "invalid"
    UNCHECKED = "unchecked"


class LoadSource(StrEnum):
    SERVER = "server"
    LOCAL_CACHE = "indexedDB"
    PREBUILT_FILE = "prebuilt-file"
    FRESH = "fresh"
    INVALID_CACHE = "invalid-cache"
