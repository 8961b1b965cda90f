#!/usr/bin/env python3
"""Homomorphic secret sharing of the product of several inputs

The inputs are additively shared among the servers (see the `sharing`
module). Each server only sees, for every input, the shares of the other
servers in the clear and its own share as a PRS ciphertext. Using only that
view, every server computes a partial result: an encryption of the sum of the
cross-terms it is assigned (see the `partition` module). The product of the
partial results is then an encryption of the product of the inputs, modulo
`2^k`, which the holder of the secret key decodes.

The main entry points of this module are `evaluate()` and `decode()`.
"""
import multiprocessing

import util
import prs
import partition


class ServerView:
    """What a server is allowed to see from the shared inputs

    Attributes:
        index (int): the index of the server
        plaintexts (list): for each input, the clear shares, with `None` at
            the position of the server
        ciphertexts (list): for each input, the encryption of the share of
            the server
    """
    def __init__(self, index, share_vectors, encrypted_share_vectors):
        """Constructor

        Arguments:
            index (int): the index of the server
            share_vectors (list): for each input, the list of clear shares
            encrypted_share_vectors (list): for each input, the list of the
                encrypted shares
        """
        if len(share_vectors) != len(encrypted_share_vectors):
            raise prs.PreconditionViolation('there should be as many share vectors as encrypted share vectors')
        if not share_vectors:
            raise prs.PreconditionViolation('at least one input is needed')
        n_servers = len(share_vectors[0])
        for shares, ciphertexts in zip(share_vectors, encrypted_share_vectors):
            if len(shares) != n_servers or len(ciphertexts) != n_servers:
                raise prs.PreconditionViolation('every share vector should have {} entries'.format(n_servers))
        if not 0 <= index < n_servers:
            raise prs.PreconditionViolation('no server of index {} among {}'.format(index, n_servers))

        self.index = index
        self.n_inputs = len(share_vectors)
        self.n_servers = n_servers
        self.plaintexts = [
            [None if j == index else share for j, share in enumerate(shares)]
            for shares in share_vectors
        ]
        self.ciphertexts = [ciphertexts[index] for ciphertexts in encrypted_share_vectors]

    def plaintext(self, position, j):
        """Clear share of server `j` for the input at `position`"""
        if j == self.index:
            raise prs.PreconditionViolation('server {} cannot see its own share'.format(self.index))
        return self.plaintexts[position][j]

    def ciphertext(self, position):
        """Encrypted share of this server for the input at `position`"""
        return self.ciphertexts[position]


def fold_direct(accumulator, factors, pk, base_size=None, rng=None):
    """Add the encryption of the product of clear factors to accumulator"""
    t = util.prod(factors, pk.k_2)
    return accumulator + pk.encrypt(t, base_size, rng)


def fold_homomorphic(accumulator, factors, ciphertext, pk):
    """Add the encrypted factor scaled by the product of clear factors"""
    t = util.prod(factors, pk.k_2)
    return accumulator + ciphertext * t


def evaluate(index, share_vectors, encrypted_share_vectors, pk, base_size=None, rng=None):
    """Compute the partial result of a server

    Arguments:
        index (int): the index of the server
        share_vectors (list): for each input, the list of clear shares; only
            the shares of the other servers are used
        encrypted_share_vectors (list): for each input, the list of the
            encrypted shares; only the share of this server is used
        pk (prs.PRSPublicKey): the public key the shares are encrypted with
        base_size (int, optional): size of the randomizers of the fresh
            encryptions
        rng (random.Random, optional): source of randomness

    Returns:
        prs.PRSCiphertext: the partial result of the server; servers without
            assigned terms return the encryption-free identity
    """
    if base_size is not None and not 0 < base_size <= pk.k:
        raise prs.PreconditionViolation('base_size must be in (0, {}] (got {})'.format(pk.k, base_size))
    view = ServerView(index, share_vectors, encrypted_share_vectors)
    terms = partition.term_partition(view.n_inputs, view.n_servers)[index]
    rng = util.default_rng(rng)

    result = pk.encrypt(0, randomize=False)
    for term in terms:
        factors = [
            view.plaintext(position, j)
            for position, j in enumerate(term.indices)
            if position != term.hidden
        ]
        if term.hidden is None:
            result = fold_direct(result, factors, pk, base_size, rng)
        else:
            result = fold_homomorphic(result, factors, view.ciphertext(term.hidden), pk)
    util.debug(3, 'server {} folded {} terms'.format(index, len(terms)))
    return result


def evaluate_all(share_vectors, encrypted_share_vectors, pk, base_size=None, processes=None):
    """Compute the partial results of every server

    Arguments:
        share_vectors (list): for each input, the list of clear shares
        encrypted_share_vectors (list): for each input, the list of the
            encrypted shares
        pk (prs.PRSPublicKey): the public key the shares are encrypted with
        base_size (int, optional): size of the randomizers
        processes (int, optional): if set, the servers are run concurrently in
            a pool of that many processes

    Returns:
        list: the partial results (prs.PRSCiphertext), by server index
    """
    n_servers = len(share_vectors[0]) if share_vectors else 0
    args = [
        (index, share_vectors, encrypted_share_vectors, pk, base_size)
        for index in range(n_servers)
    ]
    if processes is None:
        return [evaluate(*arg) for arg in args]
    with multiprocessing.Pool(processes) as pool:
        return pool.starmap(evaluate, args)


def decode(partial_results, sk):
    """Combine the partial results and decrypt the product

    Arguments:
        partial_results (list): the partial results of all the servers
        sk (prs.PRSSecretKey): the secret key

    Returns:
        int: the product of the inputs modulo `2^k`
    """
    total = sum(partial_results, sk.public_key.encrypt(0, randomize=False))
    return sk.decrypt(total)


def direct_evaluate(values, pk):
    """Product of the values modulo `2^k`, computed in the clear"""
    return util.prod(values, pk.k_2)
