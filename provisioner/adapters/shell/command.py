"""
Shell runner — the single place the provisioner starts a process.

Every adapter goes through ``ShellRunner.run``. It captures output,
turns non-zero exits and missing programs into failure receipts, and
carries the two things every command in a run shares: the environment
(PATH grows as toolchains are installed) and the dry-run switch.

In dry-run, commands marked ``mutating`` are not executed and return a
skip receipt. Read-only probes still run so the report reflects the
real machine.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 1800


class ShellRunner:
    """Run commands and capture output as receipts.

    Args:
        env: Base environment. Defaults to a copy of ``os.environ``.
        dry_run: Skip mutating commands.
    """

    name = "shell"

    def __init__(self, env: dict[str, str] | None = None, dry_run: bool = False):
        self.env = dict(os.environ if env is None else env)
        self.dry_run = dry_run

    def is_available(self) -> bool:
        return shutil.which("sh", path=self.env.get("PATH")) is not None

    # ── Environment ─────────────────────────────────────────────

    def prepend_path(self, directory: str) -> None:
        """Put ``directory`` first on PATH for every later command."""
        parts = [p for p in self.env.get("PATH", "").split(os.pathsep) if p and p != directory]
        self.env["PATH"] = os.pathsep.join([directory, *parts])
        logger.debug("PATH += %s", directory)

    def which(self, program: str) -> str | None:
        """Resolve ``program`` against this runner's PATH."""
        return shutil.which(program, path=self.env.get("PATH"))

    # ── Execution ───────────────────────────────────────────────

    def run(
        self,
        argv: list[str],
        *,
        mutating: bool = True,
        timeout: float | None = DEFAULT_TIMEOUT_S,
        cwd: str | None = None,
        input_text: str | None = None,
        interactive: bool = False,
        target: str | None = None,
    ) -> Receipt:
        """Run ``argv`` and report the outcome.

        Args:
            argv: Program and arguments. Never passed through a shell.
            mutating: Whether the command changes the machine.
            timeout: Seconds before the process is killed.
            cwd: Working directory.
            input_text: Sent on stdin.
            interactive: Inherit the terminal instead of capturing output
                (password prompts, installers that ask questions).
            target: What the receipt reports as acted on.
                Defaults to the command line.
        """
        command = " ".join(argv)
        target = target or command

        if mutating and self.dry_run:
            logger.info("[dry-run] %s", command)
            return Receipt.skip(self.name, target, reason=f"dry-run: {command}", metadata={"command": command})

        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        try:
            if interactive:
                result = subprocess.run(
                    argv, cwd=cwd, env=self.env, timeout=timeout, input=input_text, text=True, errors="replace",
                )
                output, stderr = "", ""
            else:
                result = subprocess.run(
                    argv,
                    cwd=cwd,
                    env=self.env,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    timeout=timeout,
                    input=input_text,
                )
                output, stderr = result.stdout.strip(), result.stderr.strip()
        except FileNotFoundError:
            return Receipt.failure(
                self.name, target, error=f"Command not found: {argv[0]}", metadata={"command": command},
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                self.name, target, error=f"Command timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except Exception as e:
            return Receipt.failure(
                self.name, target, error=f"Command execution error: {e}", metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                self.name,
                target,
                output=output,
                duration_ms=elapsed_ms,
                metadata={"command": command, "return_code": 0, "stderr": stderr},
            )
        return Receipt.failure(
            self.name,
            target,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={"command": command, "return_code": result.returncode, "stdout": output},
        )

    def spawn(self, argv: list[str]) -> subprocess.Popen | None:
        """Start a long-lived background process. None when not started."""
        if self.dry_run:
            logger.info("[dry-run] would start %s", " ".join(argv))
            return None
        try:
            return subprocess.Popen(
                argv, env=self.env, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not start %s: %s", argv[0], e)
            return None
