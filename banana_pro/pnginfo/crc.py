"""
PNG 块校验用的 CRC-32

参数与 PNG 规范一致：反射多项式 0xEDB88320，初值与结果异或均为 0xFFFFFFFF。
查表在首次调用时生成，之后以只读元组在进程内共享。
"""

from functools import lru_cache
from typing import Tuple

CRC_POLYNOMIAL = 0xEDB88320
CRC_MASK = 0xFFFFFFFF


@lru_cache(maxsize=None)
def crc_table() -> Tuple[int, ...]:
    """256 项查表，table[n] 为 n 经过 8 次移位约简后的值"""
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            if c & 1:
                c = CRC_POLYNOMIAL ^ (c >> 1)
            else:
                c >>= 1
        table.append(c)
    return tuple(table)


def crc32(data: bytes) -> int:
    """计算字节序列的 CRC-32，空输入返回 0"""
    table = crc_table()
    crc = CRC_MASK
    for b in bytes(data):
        crc = table[(crc ^ b) & 0xFF] ^ (crc >> 8)
    return crc ^ CRC_MASK
