"""
External process execution.

Runs a single command, forwarding output to an optional observer as it
arrives, and reports either a ``ProcessResult`` or a ``ProcessFailedError``.
Everything happens on the calling thread: the pipes are multiplexed with
``selectors`` so stdout and stderr can both be streamed without a helper
thread and without either pipe filling up and stalling the child.
"""
from __future__ import annotations

import codecs
import logging
import os
import selectors
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ProcessFailedError

__all__ = ["OutputStream", "OutputObserver", "ProcessResult", "ProcessRunner"]

logger = logging.getLogger(__name__)

# Read size for pipe chunks
CHUNK_SIZE = 4096

# Shell conventions for commands that could not be started
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


class OutputStream(str, Enum):
    """Which channel a chunk of output came from."""
    OUT = "out"
    ERR = "err"


OutputObserver = Callable[[OutputStream, str], None]


@dataclass(frozen=True)
class ProcessResult:
    """
    Result of a command that exited with status zero.

    ``output`` and ``error_output`` have trailing whitespace removed.
    """
    command: List[str]
    output: str
    error_output: str = ""
    exit_code: int = 0
    cwd: Optional[str] = field(default=None, compare=False)


class ProcessRunner:
    """
    Executes one external command per call.

    The runner holds no per-call state, so one instance can be shared by every
    facade in a process. There are no retries and no timeout: a call blocks
    until the child exits or is killed from outside.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def run(self, command: Sequence[str], cwd: Optional[str] = None,
            observer: Optional[OutputObserver] = None) -> ProcessResult:
        """
        Run ``command`` and wait for it to exit.

        Args:
            command: Program followed by its arguments
            cwd: Working directory (the current directory when None)
            observer: Called with ``(stream, chunk)`` for each decoded chunk,
                before this method returns

        Returns:
            ProcessResult with the captured, right-trimmed output

        Raises:
            ProcessFailedError: If the command exits non-zero or cannot be spawned
        """
        argv = [str(part) for part in command]
        logger.debug(f"Running {argv} in {cwd or os.getcwd()}")

        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ProcessFailedError(argv, EXIT_NOT_FOUND, error_output=str(e), cwd=cwd) from e
        except PermissionError as e:
            raise ProcessFailedError(argv, EXIT_NOT_EXECUTABLE, error_output=str(e), cwd=cwd) from e
        except OSError as e:
            # ENOEXEC, a cwd that is not a directory and similar spawn failures
            raise ProcessFailedError(argv, EXIT_NOT_EXECUTABLE, error_output=str(e), cwd=cwd) from e

        try:
            output, error_output = self._collect(proc, observer)
            exit_code = proc.wait()
        except BaseException:
            # Observer errors and interrupts must not leave an orphaned child
            proc.kill()
            proc.wait()
            raise

        output = output.rstrip()
        error_output = error_output.rstrip()
        logger.debug(f"{argv[0]} exited with {exit_code}")

        if exit_code != 0:
            raise ProcessFailedError(argv, exit_code, output=output,
                                     error_output=error_output, cwd=cwd)

        return ProcessResult(command=argv, output=output, error_output=error_output,
                             exit_code=exit_code, cwd=cwd)

    def _collect(self, proc: subprocess.Popen,
                 observer: Optional[OutputObserver]) -> Tuple[str, str]:
        """Drain both pipes, forwarding decoded chunks in arrival order."""
        buffers: Dict[OutputStream, List[str]] = {OutputStream.OUT: [], OutputStream.ERR: []}
        decoders = {
            stream: codecs.getincrementaldecoder(self.encoding)(errors="replace")
            for stream in buffers
        }

        def emit(stream: OutputStream, data: bytes, final: bool = False) -> None:
            text = decoders[stream].decode(data, final=final)
            if not text:
                return
            buffers[stream].append(text)
            if observer is not None:
                observer(stream, text)

        if os.name == "nt":
            # selectors cannot watch pipes on Windows; output arrives after exit
            stdout, stderr = proc.communicate()
            emit(OutputStream.OUT, stdout, final=True)
            emit(OutputStream.ERR, stderr, final=True)
        else:
            with selectors.DefaultSelector() as selector:
                selector.register(proc.stdout, selectors.EVENT_READ, OutputStream.OUT)
                selector.register(proc.stderr, selectors.EVENT_READ, OutputStream.ERR)
                while selector.get_map():
                    for key, _ in selector.select():
                        data = os.read(key.fd, CHUNK_SIZE)
                        if data:
                            emit(key.data, data)
                            continue
                        selector.unregister(key.fileobj)
                        key.fileobj.close()
                        emit(key.data, b"", final=True)

        return "".join(buffers[OutputStream.OUT]), "".join(buffers[OutputStream.ERR])
