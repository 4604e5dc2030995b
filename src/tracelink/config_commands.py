"""Configuration commands for the tracelink CLI."""

from cyclopts import App

from tracelink.config import DEFAULTS, get_config

config_app = App(name="config", help="Manage configuration")

SECRET_KEYS = frozenset({"notion.token"})


def _display(key: str, value: object) -> str:
    if key in SECRET_KEYS and value:
        text = str(value)
        return f"{text[:4]}...{text[-4:]}" if len(text) > 8 else "****"
    return str(value)


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key, e.g. ``scope.suite_id``
        value: Configuration value
        global_: Write to the global config instead of the local one.
    """
    get_config(use_global=global_).set(key, value)
    print(f"Set {key} = {_display(key, value)} ({'global' if global_ else 'local'})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting."""
    get_config(use_global=global_).unset(key)
    print(f"Unset {key} ({'global' if global_ else 'local'})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print one configuration setting, including built-in defaults."""
    value = get_config(use_global=global_).get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {_display(key, value)}")


@config_app.command(name="list")
def list_config(global_: bool = False, defaults: bool = False) -> None:
    """List configuration settings.

    Args:
        global_: List global config only.
        defaults: Include built-in defaults that are not overridden.
    """
    settings = dict(DEFAULTS) if defaults else {}
    settings.update(get_config(use_global=global_).list())

    if not settings:
        print(f"No {'global' if global_ else 'local'} configuration settings")
        return

    for key, value in settings.items():
        print(f"{key} = {_display(key, value)}")
