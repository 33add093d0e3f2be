"""Response validation: built-in rules and the ordered rule chain."""

from .chain import ValidationChain
from .rules import (
    UNACCEPTABLE_CONTENT_TYPE,
    UNACCEPTABLE_STATUS_CODE,
    content_type_rule,
    rule_name,
    status_code_rule,
)

__all__ = [
    "ValidationChain",
    "status_code_rule",
    "content_type_rule",
    "rule_name",
    "UNACCEPTABLE_STATUS_CODE",
    "UNACCEPTABLE_CONTENT_TYPE",
]
