import pandas as pd

from tabulate import tabulate


def format_output(result) -> str:
    """Devuelve el resultado como tabla si es un DataFrame."""
    if isinstance(result, pd.DataFrame):
        return tabulate(result, headers="keys", tablefmt="pretty", showindex=False)
    return str(result)


def style_output(result):
    """Aplica formato tabulado y lo muestra directamente."""
    print(format_output(result))


def style_metadata_property(func):
    """Decorador para aplicar estilo automáticamente a propiedades."""

    def wrapper(self):
        result = func(self)
        return style_output(result)

    wrapper.__doc__ = func.__doc__
    return property(wrapper)
