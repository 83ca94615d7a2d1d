"""
隊伍顏色工具

顏色以 24-bit RGB 整數儲存，對外顯示時轉成 "#RRGGBB" 字串。
"""
import re
from typing import Union

MAX_COLOR = 0xFFFFFF

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")


def parse_color(value: Union[int, str]) -> int:
    """
    解析顏色

    參數：
        value: "#FF0000"、"ff0000" 或 0..0xFFFFFF 的整數

    返回：
        24-bit RGB 整數

    異常：
        ValueError: 其他格式（包含 bool）
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid color: {value!r}")

    if isinstance(value, int):
        if 0 <= value <= MAX_COLOR:
            return value
        raise ValueError(f"Color out of 24-bit range: {value}")

    if isinstance(value, str):
        match = _HEX_PATTERN.match(value.strip())
        if match:
            return int(match.group(1), 16)

    raise ValueError(f"Invalid color: {value!r}")


def to_hex(color: int) -> str:
    return f"#{color:06X}"
