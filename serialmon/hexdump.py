"""
hexdump.py – инкрементальный hex-дамп принятых байтов.

Строка дампа::

    000016    -- 41 42 0a                  .AB.

* смещение начала строки (десятичное, 6 знаков)
* по токену на байт: ``--`` для 0x00, иначе две строчные hex-цифры
* колонка символов: печатный ASCII как есть, остальное ``.``

Закрытые строки (CRLF) не переписываются; незаконченная строка
собирается заново при каждом ``render()`` и выводится всегда, даже пустая
(смещение, пустые слоты, отступ колонки символов).
"""

from __future__ import annotations
from typing import Iterable, List

OFFSET_WIDTH = 6
GAP_AFTER_OFFSET = "   "
GAP_BEFORE_GLYPHS = "     "
SLOT_PAD = "   "
EOL = "\r\n"


def byte_token(b: int) -> str:
    return "--" if b == 0 else f"{b:02x}"


def byte_glyph(b: int) -> str:
    return "." if b < 32 or b > 126 else chr(b)


class HexDumpRenderer:
    def __init__(self, line_width: int = 16):
        if line_width <= 0:
            raise ValueError(f"line width must be positive, got {line_width}")
        self.line_width = line_width
        self.reset()

    def reset(self) -> None:
        self._completed: List[str] = []
        self._numbers: List[str] = []     # токены текущей строки
        self._glyphs: List[str] = []
        self._line_base = 0

    def append(self, data: Iterable[int]) -> None:
        for b in data:
            self._numbers.append(byte_token(b))
            self._glyphs.append(byte_glyph(b))
            if len(self._numbers) == self.line_width:
                self._completed.append(self._format_line() + EOL)
                self._line_base += self.line_width
                self._numbers = []
                self._glyphs = []

    def set_line_width(self, width: int, retained: bytes = b"") -> None:
        """
        Сменить ширину строки и перерисовать весь дамп из ``retained``
        (сырые байты, которые хранит сессия) с нулевого смещения.
        """
        if width <= 0:
            raise ValueError(f"line width must be positive, got {width}")
        if width == self.line_width:
            return
        self.line_width = width
        self.reset()
        self.append(retained)

    def render(self) -> str:
        return "".join(self._completed) + self._format_line()

    @property
    def byte_count(self) -> int:
        return self._line_base + len(self._numbers)

    def _format_line(self) -> str:
        missing = self.line_width - len(self._numbers)
        return (
            f"{self._line_base:0{OFFSET_WIDTH}d}" + GAP_AFTER_OFFSET
            + "".join(" " + tok for tok in self._numbers)
            + SLOT_PAD * missing
            + GAP_BEFORE_GLYPHS
            + "".join(self._glyphs)
        )
