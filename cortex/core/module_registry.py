"""Module registry for managing feature modules."""

from typing import ClassVar

from cortex.core.module import Module


class _RegistryState:
    """Singleton state for module registry."""

    modules: ClassVar[dict[str, Module]] = {}


_registry = _RegistryState()


def register_module(module: Module) -> None:
    """Register a module in the registry.

    Args:
        module: Module instance to register

    Raises:
        ValueError: If a module with the same name is already registered
    """
    if module.name in _registry.modules:
        msg = f"Module '{module.name}' is already registered"
        raise ValueError(msg)
    _registry.modules[module.name] = module


def register_default_modules() -> None:
    """Register the built-in feature modules that are not registered yet."""
    from cortex.modules.achievements import AchievementsModule
    from cortex.modules.conditionals import ConditionalsModule
    from cortex.modules.outreach import OutreachModule
    from cortex.modules.tasks import TasksModule

    for module in (TasksModule(), ConditionalsModule(), OutreachModule(), AchievementsModule()):
        if module.name not in _registry.modules:
            register_module(module)


def unregister_all() -> None:
    """Clear the registry."""
    _registry.modules.clear()


def get_modules() -> dict[str, Module]:
    """Get all registered modules."""
    return dict(_registry.modules)


def get_module(name: str) -> Module | None:
    """Get a specific module by name.

    Args:
        name: Module name to retrieve

    Returns:
        Module instance if found, None otherwise
    """
    return _registry.modules.get(name)


def get_all_table_schemas() -> dict[str, str]:
    """Get all table schemas from registered modules.

    Returns:
        Dictionary mapping table names to CREATE TABLE SQL statements

    Raises:
        ValueError: If two modules declare the same table
    """
    all_schemas: dict[str, str] = {}
    for module in _registry.modules.values():
        for table_name, schema in module.get_table_schemas().items():
            if table_name in all_schemas:
                msg = f"Duplicate table schema '{table_name}' from module '{module.name}'"
                raise ValueError(msg)
            all_schemas[table_name] = schema
    return all_schemas


def get_all_indexes() -> list[str]:
    """Get all indexes from registered modules."""
    all_indexes: list[str] = []
    for module in _registry.modules.values():
        all_indexes.extend(module.get_indexes())
    return all_indexes
