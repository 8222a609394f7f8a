"""
Zero-Knowledge Proof Module
Interactive proof of knowledge of a discrete logarithm over Z_p*
"""

from .arithmetic import modpow, is_probable_prime
from .randomness import (
    EntropySource,
    OSEntropySource,
    DeviceEntropySource,
    default_source,
    random_below,
    random_bit,
)
from .zk_proofs import (
    # Core classes
    ZKProofSystem,
    GroupParameters,
    ProtocolConfig,
    Proof,
    Commitment,
    KeyPair,
    AmplifiedProof,
    Prover,
    Verifier,

    # Parameter sets
    TOY_GROUP,
    MODP_2048_GROUP,
    GROUP_PRESETS,
    get_group_preset,

    # Operations
    prove,
    verify,
    prove_rounds,
    verify_rounds,
    simulate_transcript,
    derive_public_key,
    generate_secret_key,
    generate_keypair,
    rounds_for_security,
    soundness_error,

    # Exceptions
    ZKError,
    ParameterError,
    EntropyError,
    ProtocolError,
)

__version__ = "1.0.0"

__all__ = [
    # Arithmetic and randomness
    'modpow',
    'is_probable_prime',
    'EntropySource',
    'OSEntropySource',
    'DeviceEntropySource',
    'default_source',
    'random_below',
    'random_bit',

    # Classes
    'ZKProofSystem',
    'GroupParameters',
    'ProtocolConfig',
    'Proof',
    'Commitment',
    'KeyPair',
    'AmplifiedProof',
    'Prover',
    'Verifier',

    # Parameter sets
    'TOY_GROUP',
    'MODP_2048_GROUP',
    'GROUP_PRESETS',
    'get_group_preset',

    # Operations
    'prove',
    'verify',
    'prove_rounds',
    'verify_rounds',
    'simulate_transcript',
    'derive_public_key',
    'generate_secret_key',
    'generate_keypair',
    'rounds_for_security',
    'soundness_error',

    # Exceptions
    'ZKError',
    'ParameterError',
    'EntropyError',
    'ProtocolError',
]
