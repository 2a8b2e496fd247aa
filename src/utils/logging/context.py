"""
Logger adapter that attaches rule context to every message.
"""

import logging

# Keyword arguments Logger.log understands; everything else becomes extra
_LOG_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that merges fixed context and per-call keywords into extra.

    Usage:
        logger = ContextLogger(__name__, endpoint="employees")
        logger.warning("Field transformation failed", source_field="email")
        # record carries both endpoint and source_field
    """

    def __init__(self, name: str, **context):
        super().__init__(logging.getLogger(name), context)

    def process(self, msg, kwargs):
        call_context = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOG_KWARGS}
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {}), **call_context}
        return msg, kwargs
