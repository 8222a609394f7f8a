"""
Modular arithmetic over Z_p*.

Pure functions with no side effects. Python integers are arbitrary precision,
so the same code serves the 28-bit demo group and 2048-bit MODP groups.
"""

from .errors import ParameterError
from .randomness import random_below

# Fixed Miller-Rabin witnesses; deterministic for n < 3.3 * 10^24
SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47)


def modpow(base: int, exponent: int, modulus: int) -> int:
    """
    Computes base^exponent mod modulus by square-and-multiply.

    Walks the exponent from its low bit upwards: the running square of the
    base is folded into the result whenever the current bit is set, giving
    O(log exponent) multiplications.

    Args:
        base: any integer, reduced modulo ``modulus`` first
        exponent: non-negative exponent
        modulus: modulus greater than 1

    Returns:
        Value in [0, modulus)
    """
    if modulus <= 1:
        raise ParameterError(f"Modulus must be greater than 1, got {modulus}")
    if exponent < 0:
        raise ParameterError(f"Exponent must be non-negative, got {exponent}")

    result = 1
    base = base % modulus
    while exponent > 0:
        if exponent & 1:
            result = (result * base) % modulus
        exponent >>= 1
        base = (base * base) % modulus
    return result


def is_probable_prime(n: int, rounds: int = 40, source=None) -> bool:
    """Miller-Rabin primality test with fixed small witnesses plus random ones"""
    if n < 2:
        return False
    for q in SMALL_PRIMES:
        if n == q:
            return True
        if n % q == 0:
            return False

    d = n - 1
    shift = 0
    while d % 2 == 0:
        d //= 2
        shift += 1

    def is_witness(a: int) -> bool:
        x = modpow(a, d, n)
        if x == 1 or x == n - 1:
            return False
        for _ in range(shift - 1):
            x = (x * x) % n
            if x == n - 1:
                return False
        return True

    if any(is_witness(a) for a in SMALL_PRIMES):
        return False

    if n < 3_317_044_064_679_887_385_961_981:
        return True

    for _ in range(rounds):
        a = 2 + random_below(n - 3, source)
        if is_witness(a):
            return False
    return True


def multiplicative_order_at_least(g: int, p: int, bound: int) -> bool:
    """True when g^k != 1 (mod p) for every 1 <= k < bound"""
    acc = 1
    for _ in range(1, bound):
        acc = (acc * g) % p
        if acc == 1:
            return False
    return True

