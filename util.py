#!/usr/bin/env python3
"""Some utilities (mostly arithmetic)"""
import random
import datetime

import gmpy2

# debug_level = 0: quiet
# debug_level = 1: normal output
# debug_level = 2: some intermediate values
# debug_level = 3: detailed intermediate values
debug_level = 0


def debug(level, *args):
    """Print the arguments when the verbosity is at least `level`"""
    if level > debug_level:
        return
    print(*args)


def powmod(x, y, m):
    """Computes `x^y mod m`

    The method `powmod()` from `gmpy2` is faster than Python's builtin
    `powmod()`. However, it does add some overhead which should be skipped for
    `x = 1`.

    Arguments:
        x (int): base of the exponentiation
        y (int): exponent
        m (int): modulus

    Returns:
        int: the result of `x^y mod m`
    """
    if x == 1:
        return 1 % m
    elif y < 0:
        return invert(powmod(x, -y, m), m)
    else:
        return int(gmpy2.powmod(x, y, m))


def invert(x, m):
    """Computes the invert of `x` modulo `m`

    This is a wrapper for `invert() from `gmpy2`.

    Arguments:
        x (int): element to be inverted
        m (int): modulus

    Returns:
        int: y such that `x × y = 1 mod m`
    """
    return int(gmpy2.invert(x, m))


def is_prime(x, iterations=25):
    """Tests whether `x` is probably prime

    This is a wrapper for `is_prime() from `gmpy2` (Miller-Rabin).

    Arguments:
        x (int): the candidate prime
        iterations (int): number of Miller-Rabin rounds

    Returns:
        bool: `True` if `x` is probably prime else `False`
    """
    return bool(gmpy2.is_prime(x, iterations))


def jacobi(a, n):
    """Jacobi symbol `(a/n)` for an odd positive `n`, as -1, 0 or 1"""
    return int(gmpy2.jacobi(a, n))


def gcd(a, b):
    return int(gmpy2.gcd(a, b))


def prod(elements_iterable, modulus=None):
    """Computes the product of the given elements

    Arguments:
        elements_iterable (iterable): values (int) to be multiplied together
        modulus (int): if provided, the result will be given modulo this value

    Returns:
        int: the product of the elements from elements_iterable, 1 if there
        are none

        If modulus is not None, then the result is reduced modulo the provided
        value after each multiplication.
    """
    product = 1
    for element in elements_iterable:
        product *= element
        if modulus is not None:
            product %= modulus
    return product


def default_rng(rng=None):
    """Return `rng`, or a cryptographically secure source if it is None"""
    if rng is None:
        return random.SystemRandom()
    return rng


def randbits(rng, n_bits):
    """Uniform integer from `[0, 2^n_bits)`"""
    if n_bits <= 0:
        return 0
    return rng.getrandbits(n_bits)


def randbelow(rng, bound):
    """Uniform integer from `[0, bound)`"""
    return rng.randrange(bound)


class Timer:
    """Measure the wall time spent in a `with` block

    Attributes:
        label (str): printed along the elapsed time at debug level 1; nothing
            is printed when `None`
        elapsed (datetime.timedelta): set when the block exits
    """
    def __init__(self, label=None):
        self.label = label
        self.start = None
        self.elapsed = None

    def __enter__(self):
        self.start = datetime.datetime.now()
        return self

    def __exit__(self, type, value, traceback):
        self.elapsed = datetime.datetime.now() - self.start
        if self.label is not None and type is None:
            debug(1, '{} time elapsed: {}'.format(self.label, self.elapsed))
