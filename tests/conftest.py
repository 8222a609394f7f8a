import logging
from pathlib import Path

import pytest

from config.config import SystemConfig
from zk.randomness import EntropySource
from zk.zk_proofs import GroupParameters, ProtocolConfig, TOY_GROUP

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# 2^127 - 1 is prime; 3 has order > 2 modulo it
MERSENNE_127_GROUP = GroupParameters(p=2**127 - 1, g=3, name="mersenne127")


class ScriptedSource(EntropySource):
    """Replays fixed byte blocks, for exercising rejection sampling"""

    name = "scripted"

    def __init__(self, blocks):
        self.blocks = list(blocks)
        self.reads = 0

    def read(self, num_bytes: int) -> bytes:
        self.reads += 1
        return self._check_length(self.blocks.pop(0), num_bytes)


class BrokenSource(EntropySource):
    """Entropy source that always comes up short"""

    name = "broken"

    def __init__(self):
        self.reads = 0

    def read(self, num_bytes: int) -> bytes:
        self.reads += 1
        return self._check_length(b"\x00" * (num_bytes - 1), num_bytes)


@pytest.fixture
def toy_group() -> GroupParameters:
    return TOY_GROUP


@pytest.fixture
def system_config(tmp_path: Path) -> SystemConfig:
    return SystemConfig(
        group=TOY_GROUP,
        protocol=ProtocolConfig(rounds=16, parallel_workers=4),
        log_dir=tmp_path / "logs",
        results_dir=tmp_path / "results",
    )


class ZeroSource(EntropySource):
    """All-zero bytes: every nonce is 0 and every challenge bit is 0"""

    name = "zero"

    def read(self, num_bytes: int) -> bytes:
        return bytes(num_bytes)
