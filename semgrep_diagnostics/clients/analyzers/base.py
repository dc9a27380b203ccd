from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class StaticAnalyzerRun(BaseModel):
    """Captured result of one analyzer process."""

    model_config = ConfigDict(frozen=True)

    argv: list[str]
    returncode: int
    stdout: str
    stderr: str = ""


class IStaticAnalyzer(ABC, BaseModel):
    src: Path
    cwd: Path | None = None

    @abstractmethod
    async def run(self) -> StaticAnalyzerRun:
        pass
