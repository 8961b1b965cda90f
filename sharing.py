#!/usr/bin/env python3
"""Additive secret sharing of PRS plaintexts

A value is split into one share per server such that the shares sum to the
value modulo `2^k`. Every share is also encrypted, so that a server can use
the share it is not allowed to see through the homomorphic properties of the
PRS cryptosystem.
"""
import util
import prs


def random_split(value, n_servers, k_2, rng=None):
    """Split a value into additive shares modulo `k_2`

    The first `n_servers - 1` shares are drawn from `[0, value)` and the last
    one is the difference, so that the shares sum exactly to `value` before
    being reduced modulo `k_2`. The value 0 leaves no room to draw from, the
    shares are then drawn from `[0, k_2)` instead.

    Arguments:
        value (int): the value to split, from `[0, k_2)`
        n_servers (int): the number of shares
        k_2 (int): the plaintext modulus
        rng (random.Random, optional): source of randomness

    Returns:
        list: the `n_servers` shares (int), each from `[0, k_2)`
    """
    if n_servers < 1:
        raise prs.PreconditionViolation('at least one server is needed')
    if not 0 <= value < k_2:
        raise prs.PreconditionViolation('value must be in [0, {}) (got {})'.format(k_2, value))
    rng = util.default_rng(rng)

    bound = value if value > 0 else k_2
    shares = [util.randbelow(rng, bound) for _ in range(n_servers - 1)]
    shares.append(value - sum(shares))
    return [share % k_2 for share in shares]


def reconstruct(shares, k_2):
    """Sum of the shares modulo `k_2`"""
    return sum(shares) % k_2


def check_parameters(values, pk, n_servers, base_size=None):
    """Reject invalid sharing parameters before any randomness is drawn

    Raises:
        prs.PreconditionViolation: `base_size` is not in `(0, k]`, there is no
            server, or a value is not in `[0, 2^k)`
    """
    if base_size is not None and not 0 < base_size <= pk.k:
        raise prs.PreconditionViolation('base_size must be in (0, {}] (got {})'.format(pk.k, base_size))
    if n_servers < 1:
        raise prs.PreconditionViolation('at least one server is needed')
    for value in values:
        if not 0 <= value < pk.k_2:
            raise prs.PreconditionViolation('value must be in [0, {}) (got {})'.format(pk.k_2, value))


def share(value, pk, n_servers, base_size=None, rng=None):
    """Split a value into shares and encrypt each share

    Arguments:
        value (int): the value to share, from `[0, 2^k)`
        pk (prs.PRSPublicKey): the public key used to encrypt the shares
        n_servers (int): the number of shares
        base_size (int, optional): size of the encryption randomizers
        rng (random.Random, optional): source of randomness

    Returns:
        tuple: pair of two lists of length `n_servers`, the clear shares (int)
            and their encryptions (prs.PRSCiphertext), in the same order
    """
    check_parameters([value], pk, n_servers, base_size)
    rng = util.default_rng(rng)
    shares = random_split(value, n_servers, pk.k_2, rng)
    ciphertexts = [pk.encrypt(s, base_size, rng) for s in shares]
    return shares, ciphertexts


def share_inputs(values, pk, n_servers, base_size=None, rng=None):
    """Share every input

    All the inputs are checked before the first one is shared.

    Returns:
        tuple: pair `(share_vectors, encrypted_share_vectors)`, with one entry
            per input as returned by `share()`
    """
    values = list(values)
    check_parameters(values, pk, n_servers, base_size)
    rng = util.default_rng(rng)
    share_vectors = []
    encrypted_share_vectors = []
    for value in values:
        shares, ciphertexts = share(value, pk, n_servers, base_size, rng)
        share_vectors.append(shares)
        encrypted_share_vectors.append(ciphertexts)
    return share_vectors, encrypted_share_vectors
