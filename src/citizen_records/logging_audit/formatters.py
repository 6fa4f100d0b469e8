"""PII redaction for citizen records log output."""

import logging
import re
from typing import List, Tuple


class PIIRedactingFormatter(logging.Formatter):
    """Formatter that masks citizen names, government ids and birth dates.

    Redacts values logged as ``name=``, ``govtid=`` and ``dob=`` as well as
    JSON document fields of the same names.
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_pii: bool = False,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_pii = redact_pii

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # "name": "...", as written by the citizen codec
            (
                re.compile(r'"(name|govtid|dob)"\s*:\s*"[^"]*"'),
                r'"\1": "[REDACTED]"',
            ),
            # name=... in audit and service lines
            (
                re.compile(r'\b(name|govtid|dob)=(?:"[^"]*"|\'[^\']*\'|[^\s|,]+)'),
                r'\1=[REDACTED]',
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self.redact_pii:
            for pattern, replacement in self.patterns:
                message = pattern.sub(replacement, message)
        return message
