"""Running containers, as reported by the configured runtime's `ps`."""

from __future__ import annotations

from contextkeeper.collectors.base import Runner, or_default, run_command
from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import ContainerInfo

PS_FORMAT = "{{.Names}}\t{{.Status}}"


def parse_ps_output(stdout: str, runtime: str) -> list[ContainerInfo]:
    containers = []
    for line in stdout.splitlines():
        parts = line.split("\t")
        if len(parts) >= 2:
            containers.append(ContainerInfo(name=parts[0], status=parts[1], runtime=runtime))
    return containers


def collect_containers(
    config: ContextKeeperConfig, runner: Runner = run_command
) -> list[ContainerInfo]:
    runtime = config.containers.runtime
    result = runner([runtime, "ps", "--format", PS_FORMAT], None)
    return or_default(result, lambda out: parse_ps_output(out, runtime), [])
