"""
Exception hierarchy for the discrete-log proof system.

A failed verification is not an error and never raises; these classes cover
malformed parameters, a broken entropy source and misuse of the protocol roles.
"""


class ZKError(Exception):
    """Base exception for ZK operations"""
    pass


class ParameterError(ZKError, ValueError):
    """Group parameters or operands are malformed"""
    pass


class EntropyError(ZKError, RuntimeError):
    """Secure randomness source unavailable or returned a short read"""
    pass


class ProtocolError(ZKError, ValueError):
    """Prover/verifier roles used out of order or wire data malformed"""
    pass
