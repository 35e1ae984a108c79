from . import dart_sdk

BUILTIN_TARGETS = {
    "dart_sdk": dart_sdk.steps,
}

__all__ = ["BUILTIN_TARGETS"]
