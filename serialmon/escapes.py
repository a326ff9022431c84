"""
escapes.py – текст с escape-нотацией → байты для отправки в порт.

* ``\\n \\r \\t \\b \\f`` – одиночные управляющие символы
* ``\\xHH`` – один байт со значением HH (ровно две hex-цифры)
* всё остальное (``\\x4``, ``\\q``, ``\\\\``) уходит как есть
"""

SINGLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
}

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def encode(text: str, encoding: str = "utf-8") -> bytes:
    """
    Один проход слева направо по исходной строке.
    Подставленный результат повторно не сканируется.
    """
    out = bytearray()
    literal: list[str] = []      # накопленный обычный текст
    i, n = 0, len(text)

    def flush():
        if literal:
            out.extend("".join(literal).encode(encoding))
            literal.clear()

    while i < n:
        ch = text[i]
        if ch != "\\" or i + 1 >= n:
            literal.append(ch)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in SINGLE_ESCAPES:
            literal.append(SINGLE_ESCAPES[nxt])
            i += 2
        elif nxt == "x" and i + 3 < n and text[i + 2] in HEX_DIGITS and text[i + 3] in HEX_DIGITS:
            flush()
            out.append(int(text[i + 2:i + 4], 16))
            i += 4
        else:
            literal.append(ch)   # только сам '\', следующий символ пойдёт своим ходом
            i += 1

    flush()
    return bytes(out)
