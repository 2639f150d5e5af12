from __future__ import annotations

from typing import AsyncIterator, Optional

import anyio


class UploadProgress:
    """Byte counter for one upload, clamped to the known total size"""

    def __init__(self, total: int, label: str = "upload", report_every_pct: int = 10):
        self.total = total
        self.label = label
        self.position = 0
        self.finished = False
        self._report_every_pct = report_every_pct
        self._last_reported_pct = -1

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.position * 100.0 / self.total

    def advance(self, nbytes: int) -> int:
        """Record `nbytes` more bytes sent. Never moves backwards or past total."""
        if nbytes > 0:
            self.position = min(self.total, self.position + nbytes)
        self._report()
        if self.position >= self.total:
            self.finish()
        return self.position

    def finish(self) -> None:
        if self.finished:
            return
        self.finished = True
        print(f"  ✓ {self.label}: {self.position:,}/{self.total:,} bytes sent")

    def _report(self) -> None:
        pct = int(self.percent)
        bucket = pct - pct % self._report_every_pct
        if bucket > self._last_reported_pct and pct < 100:
            self._last_reported_pct = bucket
            print(f"  ⏳ {self.label}: {self.position:,}/{self.total:,} bytes ({pct}%)")


async def iter_file_chunks(path: str, chunk_size: int) -> AsyncIterator[bytes]:
    """Read a file lazily, one chunk per await."""
    async with await anyio.open_file(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


async def track_progress(
    chunks: AsyncIterator[bytes],
    progress: UploadProgress,
) -> AsyncIterator[bytes]:
    """Forward each chunk unchanged after counting it against `progress`."""
    async for chunk in chunks:
        progress.advance(len(chunk))
        yield chunk
    if progress.position >= progress.total:
        progress.finish()


async def file_size(path: str) -> int:
    stat = await anyio.Path(path).stat()
    return stat.st_size


def describe_size(nbytes: Optional[int]) -> str:
    if nbytes is None:
        return "unknown size"
    size = float(nbytes)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024 or unit == "GiB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{nbytes} B"
