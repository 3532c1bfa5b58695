"""
Startup discovery of tool modules.

Tool modules are listed explicitly in TOOL_MODULES; nothing is found by
scanning the filesystem. Each module exposes:

    def register_tools(registry: ToolRegistry, settings: Settings) -> None

and registers its tools by calling registry.register() directly.

Discovery is all-or-nothing. If any module fails to import or to register,
startup aborts with ToolDiscoveryError; a partially filled registry is
never served.
"""

import importlib
import logging
from collections.abc import Sequence

from opsbridge.config import Settings
from opsbridge.errors import OpsBridgeError, ToolDiscoveryError
from opsbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


TOOL_MODULES: tuple[str, ...] = (
    "opsbridge.tools.azure",
    "opsbridge.tools.discord",
)


def discover(
    registry: ToolRegistry,
    settings: Settings,
    modules: Sequence[str] = TOOL_MODULES,
) -> ToolRegistry:
    """
    Load every tool module and let it register its tools.

    Args:
        registry: Registry to fill
        settings: Settings passed to each module
        modules: Dotted module paths, loaded in order

    Returns:
        The filled registry

    Raises:
        ToolDiscoveryError: If a module cannot be imported, has no
            register_tools function, or fails while registering
    """
    for module_path in modules:
        try:
            module = importlib.import_module(module_path)
            register = getattr(module, "register_tools", None)
            if register is None:
                msg = "module has no register_tools function"
                raise AttributeError(msg)
            register(registry, settings)
        except OpsBridgeError as e:
            raise ToolDiscoveryError(module=module_path, underlying_error=e.message) from e
        except Exception as e:
            raise ToolDiscoveryError(module=module_path, underlying_error=f"{type(e).__name__}: {e}") from e
        logger.debug("Loaded tool module %s", module_path)

    logger.info("Discovered %d tools: %s", len(registry), ", ".join(registry.list_tools()))
    return registry
