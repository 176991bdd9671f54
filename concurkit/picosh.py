"""Tiny shell: pipelines, < and > redirection, and the cd built-in."""

from __future__ import annotations

import os
import re
import subprocess
import sys
from dataclasses import dataclass, field
from typing import IO, Optional, Sequence, Union

_WORD_PATTERN = re.compile(r"[^|<> \t\n]+|[<>]")

Target = Union[int, IO[bytes], IO[str], None]


@dataclass
class Command:
    """One pipeline stage: its words and optional redirections."""

    argv: list[str] = field(default_factory=list)
    stdin: Optional[str] = None
    stdout: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.argv


def _parse_segment(segment: str) -> Command:
    command = Command()
    # Scan right to left so a redirection takes the word that follows it.
    for word in reversed(_WORD_PATTERN.findall(segment)):
        if word in "<>":
            target = command.argv[0] if command.argv else None
            if word == "<":
                command.stdin = target
            else:
                command.stdout = target
            if command.argv:
                command.argv.pop(0)
        else:
            command.argv.insert(0, word)
    return command


def parse_line(line: str) -> list[Command]:
    """Split a command line into pipeline stages, left to right."""
    line = line.split("\0", 1)[0]
    return [_parse_segment(segment) for segment in line.split("|")]


def _report_error() -> None:
    sys.stderr.write("?\n")
    sys.stderr.flush()


def _change_dir(args: list[str]) -> None:
    try:
        if not args:
            raise FileNotFoundError("cd needs a directory")
        os.chdir(args[0])
    except OSError:
        _report_error()


def _spawn(
    command: Command, pipe_in: Optional[int], target: Target
) -> Optional[subprocess.Popen]:
    opened: list[int] = []
    try:
        stdin: Optional[int] = pipe_in
        stdout: Target = target
        if command.stdin is not None:
            stdin = os.open(command.stdin, os.O_RDONLY)
            opened.append(stdin)
        if command.stdout is not None:
            stdout = os.open(
                command.stdout, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666
            )
            opened.append(stdout)
        return subprocess.Popen(command.argv, stdin=stdin, stdout=stdout)
    except OSError:
        _report_error()
        return None
    finally:
        for fd in opened:
            os.close(fd)


def run_line(line: str, stdout: Target = None) -> list[int]:
    """Run a command line; return exit codes of started processes, left to right."""
    commands = parse_line(line)
    processes: list[subprocess.Popen] = []
    target: Target = stdout
    owned: Optional[int] = None
    try:
        for position, command in reversed(list(enumerate(commands))):
            if command.is_empty:
                break
            if command.argv[0] == "cd":
                _change_dir(command.argv[1:])
                break
            read_end = write_end = None
            if position:
                read_end, write_end = os.pipe()
            try:
                process = _spawn(command, read_end, target)
            finally:
                if read_end is not None:
                    os.close(read_end)
                if owned is not None:
                    os.close(owned)
                    owned = None
            if process is not None:
                processes.append(process)
            owned = write_end
            target = write_end
    finally:
        if owned is not None:
            os.close(owned)
    return [process.wait() for process in reversed(processes)]


def main(argv: Optional[Sequence[str]] = None) -> int:
    while True:
        sys.stderr.write("$ ")
        sys.stderr.flush()
        line = sys.stdin.readline()
        if not line:
            return 0
        run_line(line)