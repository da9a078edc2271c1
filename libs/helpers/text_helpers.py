import math

from typing import List, Optional
from datetime import datetime, timedelta, timezone

from dateutil import parser


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def split_csv_line(line: str, sep: str = ",") -> List[str]:
    r'''
    Divide una línea CSV respetando los campos entre comillas.

    Dentro de un tramo entre comillas el separador no divide el campo y una
    comilla doble ("") representa una comilla literal. Cada campo se devuelve
    sin espacios alrededor.

    Ejemplos:
        >>> split_csv_line('abc,"Tokyo, JP",5.2')
        ['abc', 'Tokyo, JP', '5.2']

        >>> split_csv_line('"He said ""hi""",x')
        ['He said "hi"', 'x']
    '''
    fields = []
    current = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == sep and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return [field.strip() for field in fields]


def is_number(s):
    try:
        float(s)
        return True
    except (TypeError, ValueError):
        return False


def to_finite_number(text: Optional[str]) -> Optional[float]:
    """Convierte un texto a float; devuelve None si está vacío o no es finito."""
    if text is None:
        return None

    text = text.strip()
    if not text:
        return None

    try:
        number = float(text)
    except ValueError:
        return None

    return number if math.isfinite(number) else None


def datetime_to_epoch_ms(value: datetime) -> int:
    """Convierte un datetime a milisegundos epoch (los datetime naive se toman en UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def epoch_ms_to_datetime(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def parse_calendar_datetime(text: str) -> Optional[datetime]:
    """
    Intenta interpretar un texto como fecha/hora de calendario.

    Los textos numéricos se descartan antes de cualquier parser: isoparse lee
    "1701010112345" como 1701-01-01T23:45 (forma básica YYYYMMDD).
    Luego se intenta ISO-8601 estricto y por último el parser general.
    """
    if is_number(text):
        return None

    try:
        return parser.isoparse(text)
    except (ValueError, OverflowError):
        pass

    try:
        return parser.parse(text)
    except (parser.ParserError, ValueError, OverflowError):
        return None


def parse_epoch_millis(text: Optional[str], default: int = 0) -> int:
    """
    Convierte un campo de tiempo a milisegundos epoch.

    Orden: fecha de calendario, luego número epoch en milisegundos, luego `default`.
    """
    if not text:
        return default

    parsed = parse_calendar_datetime(text)
    if parsed is not None:
        try:
            return datetime_to_epoch_ms(parsed)
        except (OverflowError, ValueError):
            pass

    number = to_finite_number(text)
    if number is not None:
        return int(number)

    return default
