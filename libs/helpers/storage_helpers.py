from pathlib import Path


def validate_folder(path: str | Path, create_if_missing: bool = False) -> Path:
    """
    Valida si una carpeta existe. Opcionalmente, la crea si no existe.

    Parámetros:
    ----------
    path : str | Path
        Ruta a validar.
    create_if_missing : bool
        Si es True, crea la carpeta si no existe.

    Retorna:
    -------
    Path
        Objeto Path de la ruta validada o creada.

    Lanza:
    -----
    FileNotFoundError si la ruta no existe y `create_if_missing` es False.
    """
    path = Path(path)

    if path.is_dir():
        return path

    if create_if_missing:
        path.mkdir(parents=True, exist_ok=True)
        return path
    else:
        raise FileNotFoundError(f"La ruta no existe: {path}")


def validate_file(path: str | Path, create_parents: bool = True) -> Path:
    """
    Valida la ruta de un archivo y opcionalmente crea las carpetas padre.

    Args:
        path (str | Path): Ruta del archivo.
        create_parents (bool, opcional): Si True, crea las carpetas padre si no existen.

    Retorna:
        Path: ruta validada.

    Lanza:
        FileExistsError: si la ruta existe pero no es un archivo.
    """
    path = Path(path)

    if path.exists() and not path.is_file():
        raise FileExistsError(f"La ruta existe pero no es un archivo: {path}")

    if create_parents:
        path.parent.mkdir(parents=True, exist_ok=True)

    return path
