"""SM2 Tool: text front end for the SM2 engine"""

from .tool import (
    SM2Tool,
    ToolOptions,
    KeyStrings,
    OutputFormat,
)

__all__ = [
    'SM2Tool',
    'ToolOptions',
    'KeyStrings',
    'OutputFormat',
]

__version__ = "0.1.0"
