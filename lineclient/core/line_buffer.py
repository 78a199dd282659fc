"""
输入缓冲区
累积接收到的数据，按行分隔符切分出完整的行
"""

import codecs
from typing import List, Union


class LineBuffer:
    """
    行缓冲区

    接收的字节经增量解码器解码后追加到缓冲区，
    每次提取时取出所有以分隔符结尾的完整行（不含分隔符），
    剩余的不完整部分留在缓冲区等待后续数据。
    """

    def __init__(self, delimiter: str = "\n", encoding: str = "utf-8", errors: str = "replace"):
        """
        Args:
            delimiter: 行分隔符
            encoding: 字节解码编码
            errors: 解码错误处理方式
        """
        self._delimiter = ""
        self.delimiter = delimiter
        self.encoding = encoding
        self._errors = errors
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._buffer = ""
        # 此位置之前已确认不含分隔符
        self._scan_from = 0

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @delimiter.setter
    def delimiter(self, value: str) -> None:
        if not value:
            raise ValueError("行分隔符不能为空")
        self._delimiter = value
        self._scan_from = 0

    @property
    def pending(self) -> str:
        """缓冲区中尚未成行的数据"""
        return self._buffer

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, data: Union[bytes, str]) -> List[str]:
        """
        追加数据并提取完整的行

        Args:
            data: 接收到的数据

        Returns:
            按到达顺序排列的完整行
        """
        if isinstance(data, (bytes, bytearray)):
            data = self._decoder.decode(bytes(data))
        self._buffer += data
        return self.extract()

    def extract(self) -> List[str]:
        """取出缓冲区中所有完整的行，空行也会返回"""
        lines: List[str] = []
        buf = self._buffer
        delim = self._delimiter
        start = 0
        pos = self._scan_from

        while True:
            idx = buf.find(delim, pos)
            if idx < 0:
                break
            lines.append(buf[start:idx])
            start = idx + len(delim)
            pos = start

        if start:
            buf = buf[start:]
            self._buffer = buf
        # 分隔符可能跨越两次读取，保留末尾 len(delim)-1 个字符重新扫描
        self._scan_from = max(0, len(buf) - len(delim) + 1)
        return lines

    def reset(self) -> None:
        """清空缓冲区与解码器状态"""
        self._buffer = ""
        self._scan_from = 0
        self._decoder = codecs.getincrementaldecoder(self.encoding)(errors=self._errors)
