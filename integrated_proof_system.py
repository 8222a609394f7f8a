#!/usr/bin/env python3
"""
Integrated Discrete-Log Proof System
====================================
Drives proof sessions between a prover identity and a verifier.

Each round runs the prover and verifier roles as separate objects exchanging
only h, b and s, so the in-process calls can be replaced by a transport
without touching the proof engine. Rounds of a session are independent and
run on a thread pool; a session is accepted only when every round verifies.

Every round is reported to a sink as
{role_label, x_or_none, y, h, b, s, left, right, verified}. Sinks only
observe; nothing they do feeds back into the protocol.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional

from config.config import SystemConfig
from utils.utils import PerformanceMonitor
from zk.randomness import EntropySource
from zk.zk_proofs import (
    ZKProofSystem,
    KeyPair,
    Proof,
    soundness_error,
)

logger = logging.getLogger(__name__)

# ============================================================================
# REPORTING
# ============================================================================


@dataclass
class RoundReport:
    """Observable outcome of one round"""
    role_label: str
    x: Optional[int]
    y: int
    h: int
    b: int
    s: int
    left: Optional[int]
    right: Optional[int]
    verified: bool
    round_index: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReportSink:
    """Receives one RoundReport per round"""

    def emit(self, report: RoundReport):
        raise NotImplementedError


class LoggingReportSink(ReportSink):
    """Writes each round as a human-readable log line"""

    def __init__(self, logger_name: str = "zkp.report"):
        self.logger = logging.getLogger(logger_name)

    def emit(self, report: RoundReport):
        secret = f"x={report.x} " if report.x is not None else ""
        status = "successful" if report.verified else "failed"
        self.logger.info(
            f"[{report.role_label} #{report.round_index}] {secret}y={report.y} "
            f"proof={{h: {report.h}, b: {report.b}, s: {report.s}}} "
            f"g^s={report.left} h*y^b={report.right} -> verification {status}")


class CollectingReportSink(ReportSink):
    """Keeps reports in memory for export and tests"""

    def __init__(self):
        self.reports: List[RoundReport] = []

    def emit(self, report: RoundReport):
        self.reports.append(report)


# ============================================================================
# SESSION STATE
# ============================================================================


@dataclass
class ProverIdentity:
    """A registered prover: public key y shared, secret x kept private"""
    identity: str
    public_key: int
    secret: int = field(repr=False)
    registration_time: float = field(default_factory=time.time)


@dataclass
class SessionResult:
    """Outcome of an n-round session against one public key"""
    identity: str
    label: str
    reports: List[RoundReport]
    verified: bool
    duration: float

    @property
    def rounds(self) -> int:
        return len(self.reports)

    @property
    def rounds_passed(self) -> int:
        return sum(1 for report in self.reports if report.verified)

    @property
    def soundness_error(self) -> float:
        return soundness_error(self.rounds)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'identity': self.identity,
            'label': self.label,
            'rounds': self.rounds,
            'rounds_passed': self.rounds_passed,
            'verified': self.verified,
            'soundness_error': self.soundness_error,
            'duration': self.duration,
            'reports': [report.as_dict() for report in self.reports],
        }


# ============================================================================
# INTEGRATED PROOF SYSTEM
# ============================================================================


class IntegratedProofSystem:
    """
    Orchestrates registration and proof sessions:
    1. Group validation (once, at initialization)
    2. Prover registration (key generation or supplied secret)
    3. Multi-round sessions with per-round reporting
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        sink: Optional[ReportSink] = None,
        source: Optional[EntropySource] = None,
        reveal_secrets: bool = False
    ):
        self.config = config or SystemConfig()
        self.sink = sink or LoggingReportSink()
        self.source = source
        self.reveal_secrets = reveal_secrets
        self.performance_monitor = PerformanceMonitor()

        self.zk_system: Optional[ZKProofSystem] = None
        self.identities: Dict[str, ProverIdentity] = {}
        self.sessions: List[SessionResult] = []

        self._initialized = False
        self._setup_lock = asyncio.Lock()

    async def initialize(self):
        """Validate group parameters once before any proof is attempted"""
        async with self._setup_lock:
            if self._initialized:
                return

            logger.info(" Initializing proof system...")
            with self.performance_monitor.start_operation("group_validation"):
                self.zk_system = ZKProofSystem(
                    self.config.group, self.config.protocol, self.source)
            self._initialized = True

    async def register_prover(self, identity: str, secret: Optional[int] = None) -> ProverIdentity:
        """Register a prover, drawing a fresh key pair unless a secret is supplied"""
        if not self._initialized:
            await self.initialize()

        if identity in self.identities:
            raise ValueError(f"Prover {identity} already registered")

        if secret is None:
            keypair = self.zk_system.keygen()
        else:
            # Prover rejects secrets outside [0, p-1)
            keypair = KeyPair(x=secret, y=self.zk_system.prover(secret).public_key)

        registered = ProverIdentity(
            identity=identity, public_key=keypair.y, secret=keypair.x)
        self.identities[identity] = registered
        logger.info(f"Registered prover {identity} with public key y={registered.public_key}")
        return registered

    def _run_round(self, index: int, label: str, secret: int, public_key: int) -> RoundReport:
        """One commit/challenge/response exchange between separate role objects"""
        prover = self.zk_system.prover(secret)
        verifier = self.zk_system.verifier(public_key)

        commitment = prover.commit()
        b = verifier.challenge()
        proof = prover.respond(commitment, b)
        left, right, ok = verifier.check(proof)

        return RoundReport(
            role_label=label,
            x=secret if self.reveal_secrets else None,
            y=public_key,
            h=proof.h,
            b=proof.b,
            s=proof.s,
            left=left,
            right=right,
            verified=ok,
            round_index=index
        )

    async def _run_rounds(self, rounds: int, round_fn) -> List[RoundReport]:
        loop = asyncio.get_running_loop()
        workers = min(self.config.protocol.parallel_workers, rounds)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            tasks = [loop.run_in_executor(executor, round_fn, index)
                     for index in range(1, rounds + 1)]
            return list(await asyncio.gather(*tasks))

    async def run_session(
        self,
        identity: str,
        rounds: Optional[int] = None,
        claimed_secret: Optional[int] = None,
        label: str = "prover"
    ) -> SessionResult:
        """
        Run independent rounds against the registered public key.

        claimed_secret replaces the registered secret on the prover side only;
        the verifier always checks against the registered y.
        """
        if not self._initialized:
            await self.initialize()

        registered = self.identities.get(identity)
        if registered is None:
            raise KeyError(f"Unknown prover {identity}")

        rounds = rounds or self.config.protocol.effective_rounds()
        if rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {rounds}")
        secret = registered.secret if claimed_secret is None else claimed_secret

        start_time = time.time()
        with self.performance_monitor.start_operation(f"session_{label}"):
            reports = await self._run_rounds(
                rounds,
                lambda index: self._run_round(index, label, secret, registered.public_key))

        return self._finish_session(identity, label, reports, start_time)

    def _finish_session(self, identity: str, label: str, reports: List[RoundReport],
                        start_time: float) -> SessionResult:
        for report in reports:
            self.sink.emit(report)

        result = SessionResult(
            identity=identity,
            label=label,
            reports=reports,
            verified=all(report.verified for report in reports),
            duration=time.time() - start_time
        )
        self.sessions.append(result)

        logger.info(
            f"Session {label} for {identity}: {result.rounds_passed}/{result.rounds} rounds passed, "
            f"{'ACCEPTED' if result.verified else 'REJECTED'} "
            f"(soundness error {result.soundness_error:.3e})")
        return result

    async def demonstrate_wrong_secret(self, identity: str, rounds: int = 8,
                                       max_extra_rounds: int = 32) -> SessionResult:
        """
        Prove with x + 1 against the registered y.

        Every b = 1 round must fail. A b = 0 round passes regardless of the
        secret, which is the single-round soundness gap. When none of the
        first rounds draws b = 1, single rounds are added until one does, up
        to max_extra_rounds.
        """
        if not self._initialized:
            await self.initialize()

        registered = self.identities.get(identity)
        if registered is None:
            raise KeyError(f"Unknown prover {identity}")
        if rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {rounds}")

        label = "impostor"
        fake_secret = (registered.secret + 1) % self.config.group.order

        def round_fn(index):
            return self._run_round(index, label, fake_secret, registered.public_key)

        start_time = time.time()
        with self.performance_monitor.start_operation(f"session_{label}"):
            reports = await self._run_rounds(rounds, round_fn)

            loop = asyncio.get_running_loop()
            extra = 0
            while not any(r.b == 1 for r in reports) and extra < max_extra_rounds:
                extra += 1
                reports.append(await loop.run_in_executor(None, round_fn, rounds + extra))

        if not any(r.b == 1 for r in reports):
            logger.warning(
                f"No b=1 challenge in {len(reports)} impostor rounds; challenge source looks biased")

        result = self._finish_session(identity, label, reports, start_time)

        gap_rounds = [r for r in result.reports if r.b == 0 and r.verified]
        caught_rounds = [r for r in result.reports if r.b == 1 and not r.verified]
        leaked_rounds = [r for r in result.reports if r.b == 1 and r.verified]

        logger.info(
            f"Wrong secret: {len(caught_rounds)} rounds caught on b=1, "
            f"{len(gap_rounds)} rounds passed on b=0 (expected soundness gap)")
        if leaked_rounds:
            logger.error(
                f"Wrong secret passed {len(leaked_rounds)} rounds with b=1; group parameters are degenerate")
        return result

    async def run_simulation(self, identity: str, rounds: int = 4) -> SessionResult:
        """Accepting transcripts for the registered y produced without the secret"""
        if not self._initialized:
            await self.initialize()

        registered = self.identities.get(identity)
        if registered is None:
            raise KeyError(f"Unknown prover {identity}")

        start_time = time.time()
        verifier = self.zk_system.verifier(registered.public_key)
        reports = []
        for index in range(1, rounds + 1):
            proof: Proof = self.zk_system.simulate(registered.public_key)
            left, right, ok = verifier.check(proof)
            reports.append(RoundReport(
                role_label="simulator", x=None, y=registered.public_key,
                h=proof.h, b=proof.b, s=proof.s,
                left=left, right=right, verified=ok, round_index=index))

        return self._finish_session(identity, "simulator", reports, start_time)

    def get_results(self) -> Dict[str, Any]:
        """Collected results for export; x appears in reports only when reveal_secrets is set"""
        return {
            'group': self.config.group.describe(),
            'protocol': {
                'rounds': self.config.protocol.effective_rounds(),
                'parallel_workers': self.config.protocol.parallel_workers,
            },
            'identities': {
                name: {'public_key': registered.public_key}
                for name, registered in self.identities.items()
            },
            'sessions': [session.as_dict() for session in self.sessions],
            'performance': self.performance_monitor.get_summary(),
        }
