"""
Discrete-Logarithm Zero-Knowledge Proof System
Interactive proof of knowledge of x such that y = g^x mod p

Protocol (one round):
    Prover   : r <- [0, p-1),  h = g^r mod p          --- h --->
    Verifier : b <- {0, 1}                            <--- b ---
    Prover   : s = (r + b*x) mod (p-1)                --- s --->
    Verifier : accept iff g^s == h * y^b (mod p)

Completeness: an honest prover always passes, since
g^s = g^(r + b*x) = g^r * (g^x)^b = h * y^b (mod p).

Soundness: a prover without x can answer at most one of the two challenges
for a given h (picking s = r always passes b = 0, which only shows knowledge
of log h). One round therefore has soundness error 1/2, and n independent
rounds that must all verify have soundness error 2^-n. Reaching 2^-k needs
rounds_for_security(k) == k rounds.

Zero-knowledge (informal): simulate_transcript() produces accepting
transcripts without x by choosing s and b first and solving for h. Those are
distributed like honest ones as long as r is fresh for every round, so a
transcript reveals nothing about x beyond the claim itself.

Only y and the transcript values h, b, s ever cross a transport; x and r stay
with the prover.
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .arithmetic import modpow, is_probable_prime, multiplicative_order_at_least
from .errors import ZKError, ParameterError, EntropyError, ProtocolError
from .randomness import EntropySource, random_below, random_bit

logger = logging.getLogger(__name__)

# ============================================================================
# GROUP PARAMETERS AND PROTOCOL CONFIGURATION
# ============================================================================


@dataclass(frozen=True)
class GroupParameters:
    """Prime modulus p and generator g of Z_p*; fixed for the process lifetime"""
    p: int
    g: int
    name: str = "custom"

    @property
    def order(self) -> int:
        """Exponent modulus used for responses"""
        return self.p - 1

    @property
    def bits(self) -> int:
        return self.p.bit_length()

    def validate(self, source: Optional[EntropySource] = None) -> "GroupParameters":
        """Reject malformed parameters before any proof is attempted"""
        if not isinstance(self.p, int) or not isinstance(self.g, int):
            raise ParameterError(f"Group {self.name}: p and g must be integers")
        if self.p <= 2:
            raise ParameterError(f"Group {self.name}: p must be a prime > 2, got {self.p}")
        if not is_probable_prime(self.p, source=source):
            raise ParameterError(f"Group {self.name}: p is not prime")
        if not 1 < self.g < self.p:
            raise ParameterError(f"Group {self.name}: g must satisfy 1 < g < p")
        if not multiplicative_order_at_least(self.g, self.p, 3):
            raise ParameterError(f"Group {self.name}: g has order <= 2")

        logger.debug(f"Validated group {self.name} ({self.bits}-bit prime)")
        return self

    def describe(self) -> Dict[str, Any]:
        return {'name': self.name, 'p': self.p, 'g': self.g, 'bits': self.bits}


# Demo parameters: a 28-bit prime, trivially breakable
TOY_GROUP = GroupParameters(p=234234163, g=2, name="toy")

# RFC 3526 - 2048-bit MODP Group (group 14)
MODP_2048_GROUP = GroupParameters(
    p=int("""
        FFFFFFFF FFFFFFFF C90FDAA2 2168C234 C4C6628B 80DC1CD1
        29024E08 8A67CC74 020BBEA6 3B139B22 514A0879 8E3404DD
        EF9519B3 CD3A431B 302B0A6D F25F1437 4FE1356D 6D51C245
        E485B576 625E7EC6 F44C42E9 A637ED6B 0BFF5CB6 F406B7ED
        EE386BFB 5A899FA5 AE9F2411 7C4B1FE6 49286651 ECE45B3D
        C2007CB8 A163BF05 98DA4836 1C55D39A 69163FA8 FD24CF5F
        83655D23 DCA3AD96 1C62F356 208552BB 9ED52907 7096966D
        670C354E 4ABC9804 F1746C08 CA18217C 32905E46 2E36CE3B
        E39E772C 180E8603 9B2783A2 EC07A28F B5C55DF0 6F4C52C9
        DE2BCBF6 95581718 3995497C EA956AE5 15D22618 98FA0510
        15728E5A 8AACAA68 FFFFFFFF FFFFFFFF
        """.replace(" ", "").replace("\n", ""), 16),
    g=2,
    name="modp2048",
)

GROUP_PRESETS: Dict[str, GroupParameters] = {
    TOY_GROUP.name: TOY_GROUP,
    MODP_2048_GROUP.name: MODP_2048_GROUP,
}


def get_group_preset(name: str) -> GroupParameters:
    try:
        return GROUP_PRESETS[name]
    except KeyError:
        raise ParameterError(
            f"Unknown group preset '{name}', expected one of {sorted(GROUP_PRESETS)}") from None


def rounds_for_security(bits: int) -> int:
    """Rounds needed for soundness error 2^-bits; a one-bit challenge adds one bit per round"""
    if bits < 1:
        raise ValueError(f"Security level must be at least 1 bit, got {bits}")
    return bits


def soundness_error(rounds: int) -> float:
    """Probability that a prover without x passes all rounds"""
    return 2.0 ** -rounds


@dataclass
class ProtocolConfig:
    """Round count and execution settings"""
    rounds: int = 1
    target_security_bits: Optional[int] = None
    parallel_workers: int = 1

    def __post_init__(self):
        if self.rounds < 1:
            raise ParameterError(f"rounds must be >= 1, got {self.rounds}")
        if self.target_security_bits is not None and self.target_security_bits < 1:
            raise ParameterError(
                f"target_security_bits must be >= 1, got {self.target_security_bits}")
        if self.parallel_workers < 1:
            raise ParameterError(
                f"parallel_workers must be >= 1, got {self.parallel_workers}")

    def effective_rounds(self) -> int:
        if self.target_security_bits is not None:
            return rounds_for_security(self.target_security_bits)
        return self.rounds


# ============================================================================
# PROOF VALUES
# ============================================================================


@dataclass(frozen=True)
class Proof:
    """Single-round transcript: commitment h, challenge bit b, response s"""
    h: int
    b: int
    s: int

    def to_dict(self) -> Dict[str, int]:
        return {'h': self.h, 'b': self.b, 's': self.s}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proof":
        try:
            h, b, s = data['h'], data['b'], data['s']
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed proof: missing field {e}") from e
        for label, value in (('h', h), ('b', b), ('s', s)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ProtocolError(f"Malformed proof: {label} must be an integer")
        if b not in (0, 1):
            raise ProtocolError(f"Malformed proof: challenge must be 0 or 1, got {b}")
        return cls(h=h, b=b, s=s)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, payload: str) -> "Proof":
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Malformed proof JSON: {e}") from e
        return cls.from_dict(data)


@dataclass
class Commitment:
    """Prover's first message; h is public, the nonce r never leaves the prover"""
    h: int
    nonce: Optional[int] = field(default=None, repr=False)
    created_at: float = field(default_factory=time.time)

    @property
    def answered(self) -> bool:
        return self.nonce is None


@dataclass(frozen=True)
class KeyPair:
    """Secret exponent x and public key y = g^x mod p"""
    x: int = field(repr=False)
    y: int

    def public_dict(self) -> Dict[str, int]:
        return {'y': self.y}


def derive_public_key(x: int, group: GroupParameters) -> int:
    return modpow(group.g, x, group.p)


def generate_secret_key(group: GroupParameters, source: Optional[EntropySource] = None) -> int:
    return random_below(group.order, source)


def generate_keypair(group: GroupParameters, source: Optional[EntropySource] = None) -> KeyPair:
    x = generate_secret_key(group, source)
    return KeyPair(x=x, y=derive_public_key(x, group))


# ============================================================================
# PROVER AND VERIFIER ROLES
# ============================================================================


class Prover:
    """Holds the secret x; produces commitments and answers challenges"""

    def __init__(self, secret: int, group: GroupParameters, source: Optional[EntropySource] = None):
        if group.p <= 1:
            raise ParameterError(f"Modulus must be greater than 1, got {group.p}")
        if not 0 <= secret < group.order:
            raise ParameterError("Secret key must lie in [0, p-1)")
        self._secret = secret
        self.group = group
        self.source = source
        self.public_key = derive_public_key(secret, group)

    def commit(self) -> Commitment:
        r = random_below(self.group.order, self.source)
        return Commitment(h=modpow(self.group.g, r, self.group.p), nonce=r)

    def respond(self, commitment: Commitment, challenge: int) -> Proof:
        """Answer a challenge; each commitment is answered exactly once"""
        if challenge not in (0, 1):
            raise ProtocolError(f"Challenge must be 0 or 1, got {challenge}")
        if commitment.answered:
            # A second answer under the same r gives s1 - s0 = x
            raise ProtocolError("Commitment already answered; draw a fresh commitment")

        r = commitment.nonce
        commitment.nonce = None
        s = (r + challenge * self._secret) % self.group.order
        return Proof(h=commitment.h, b=challenge, s=s)


class Verifier:
    """Holds the public key y; issues challenges and checks transcripts"""

    def __init__(self, public_key: int, group: GroupParameters, source: Optional[EntropySource] = None):
        if group.p <= 1:
            raise ParameterError(f"Modulus must be greater than 1, got {group.p}")
        self.public_key = public_key
        self.group = group
        self.source = source

    def challenge(self) -> int:
        return random_bit(self.source)

    def check(self, proof: Proof) -> Tuple[Optional[int], Optional[int], bool]:
        """
        Evaluate both sides of g^s == h * y^b (mod p).

        Returns (left, right, accepted). Out-of-range transcript values are
        rejected with (None, None, False).
        """
        p = self.group.p
        if proof.b not in (0, 1) or proof.s < 0 or not 0 < proof.h < p:
            return None, None, False

        left = modpow(self.group.g, proof.s, p)
        right = (proof.h * modpow(self.public_key, proof.b, p)) % p
        return left, right, left == right

    def verify(self, proof: Proof) -> bool:
        return self.check(proof)[2]


# ============================================================================
# FLAT PROVE / VERIFY
# ============================================================================


def prove(x: int, g: int, p: int, source: Optional[EntropySource] = None) -> Tuple[int, Proof]:
    """Run one in-process round as prover; the challenge bit is drawn locally"""
    group = GroupParameters(p=p, g=g)
    prover = Prover(x, group, source)
    commitment = prover.commit()
    b = Verifier(prover.public_key, group, source).challenge()
    return prover.public_key, prover.respond(commitment, b)


def verify(y: int, g: int, p: int, proof: Proof) -> bool:
    return Verifier(y, GroupParameters(p=p, g=g)).verify(proof)


def simulate_transcript(y: int, group: GroupParameters, b: Optional[int] = None,
                        source: Optional[EntropySource] = None) -> Proof:
    """Accepting transcript for y produced without x: h = g^s * y^-b mod p"""
    if not 0 < y < group.p:
        raise ParameterError("Public key must lie in (0, p)")
    if b is None:
        b = random_bit(source)
    elif b not in (0, 1):
        raise ProtocolError(f"Challenge must be 0 or 1, got {b}")

    s = random_below(group.order, source)
    y_b = modpow(y, b, group.p)
    # p is prime, so y_b^(p-2) is the inverse of y_b
    h = (modpow(group.g, s, group.p) * modpow(y_b, group.p - 2, group.p)) % group.p
    return Proof(h=h, b=b, s=s)


# ============================================================================
# SOUNDNESS AMPLIFICATION
# ============================================================================


def _single_round(x: int, group: GroupParameters, source: Optional[EntropySource]) -> Tuple[int, Proof]:
    return prove(x, group.g, group.p, source)


def prove_rounds(x: int, group: GroupParameters, rounds: int, workers: int = 1,
                 source: Optional[EntropySource] = None) -> Tuple[int, List[Proof]]:
    """Independent rounds, each with fresh r and b; optionally on worker threads"""
    if rounds < 1:
        raise ParameterError(f"rounds must be >= 1, got {rounds}")
    y = derive_public_key(x, group)

    if workers > 1 and rounds > 1:
        with ThreadPoolExecutor(max_workers=min(workers, rounds)) as executor:
            futures = [executor.submit(_single_round, x, group, source) for _ in range(rounds)]
            proofs = [future.result()[1] for future in futures]
    else:
        proofs = [_single_round(x, group, source)[1] for _ in range(rounds)]

    logger.debug(f"Generated {rounds} proof rounds over group {group.name}")
    return y, proofs


def verify_rounds(y: int, group: GroupParameters, proofs: List[Proof]) -> bool:
    """Accept only when there is at least one round and every round verifies"""
    if not proofs:
        return False
    verifier = Verifier(y, group)
    return all(verifier.verify(proof) for proof in proofs)


@dataclass
class AmplifiedProof:
    """Public key and the transcripts of n independent rounds"""
    y: int
    proofs: List[Proof]
    group_name: str = "custom"

    @property
    def rounds(self) -> int:
        return len(self.proofs)

    @property
    def soundness_error(self) -> float:
        return soundness_error(self.rounds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'y': self.y,
            'group': self.group_name,
            'proofs': [proof.to_dict() for proof in self.proofs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AmplifiedProof":
        try:
            y = data['y']
            proofs = [Proof.from_dict(item) for item in data['proofs']]
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed amplified proof: {e}") from e
        return cls(y=y, proofs=proofs, group_name=data.get('group', 'custom'))


# ============================================================================
# COMPLETE ZK PROOF SYSTEM
# ============================================================================


class ZKProofSystem:
    """Proof engine bound to one validated group and protocol configuration"""

    def __init__(self, group: GroupParameters = TOY_GROUP, protocol: Optional[ProtocolConfig] = None,
                 source: Optional[EntropySource] = None, validate: bool = True):
        self.group = group.validate(source) if validate else group
        self.protocol = protocol or ProtocolConfig()
        self.source = source
        logger.info(
            f"ZK proof system ready: group={group.name} ({group.bits}-bit), "
            f"rounds={self.protocol.effective_rounds()}")

    def keygen(self) -> KeyPair:
        return generate_keypair(self.group, self.source)

    def prover(self, secret: int) -> Prover:
        return Prover(secret, self.group, self.source)

    def verifier(self, public_key: int) -> Verifier:
        return Verifier(public_key, self.group, self.source)

    def prove(self, x: int) -> Tuple[int, Proof]:
        return prove(x, self.group.g, self.group.p, self.source)

    def verify(self, y: int, proof: Proof) -> bool:
        return verify(y, self.group.g, self.group.p, proof)

    def prove_amplified(self, x: int, rounds: Optional[int] = None) -> AmplifiedProof:
        rounds = rounds or self.protocol.effective_rounds()
        y, proofs = prove_rounds(x, self.group, rounds, self.protocol.parallel_workers, self.source)
        return AmplifiedProof(y=y, proofs=proofs, group_name=self.group.name)

    def verify_amplified(self, amplified: AmplifiedProof, y: Optional[int] = None) -> bool:
        """Check every round against y (defaults to the key carried in the proof)"""
        target = amplified.y if y is None else y
        return verify_rounds(target, self.group, amplified.proofs)

    def simulate(self, y: int, b: Optional[int] = None) -> Proof:
        return simulate_transcript(y, self.group, b, self.source)

    def soundness_error(self, rounds: Optional[int] = None) -> float:
        return soundness_error(rounds or self.protocol.effective_rounds())


__all__ = [
    'ZKError',
    'ParameterError',
    'EntropyError',
    'ProtocolError',
    'GroupParameters',
    'TOY_GROUP',
    'MODP_2048_GROUP',
    'GROUP_PRESETS',
    'get_group_preset',
    'ProtocolConfig',
    'rounds_for_security',
    'soundness_error',
    'Proof',
    'Commitment',
    'KeyPair',
    'derive_public_key',
    'generate_secret_key',
    'generate_keypair',
    'Prover',
    'Verifier',
    'prove',
    'verify',
    'simulate_transcript',
    'prove_rounds',
    'verify_rounds',
    'AmplifiedProof',
    'ZKProofSystem',
]
