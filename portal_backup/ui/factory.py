"""Factory for creating UI interfaces."""
from typing import Any

from ..core.logging import get_logger
from ..ui.ascii import ASCIIInterface
from ..ui.rich_ascii import RichASCIIInterface

logger = get_logger(__name__)

INTERFACE_TYPES = ("ascii", "rich_ascii")

def create_interface(interface_type: str = "rich_ascii", **kwargs) -> Any:
    """Create an appropriate UI interface.

    Args:
        interface_type: Type of interface to create ('ascii' or 'rich_ascii')
        **kwargs: Additional arguments to pass to the interface constructor

    Returns:
        UI interface instance
    """
    if interface_type.lower() == "rich_ascii":
        logger.debug("Using Rich ASCII interface")
        return RichASCIIInterface(**kwargs)
    else:
        logger.debug("Using basic ASCII interface")
        return ASCIIInterface(**kwargs)
