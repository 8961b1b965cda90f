#!/usr/bin/env python3
"""Assignment of the cross-terms of a product of shared values to servers

Each input `m_t` is split into shares `s_t[0], ..., s_t[N-1]`, so that the
product of the inputs expands into `N^t` cross-terms
`s_0[i_0] × s_1[i_1] × ... × s_{t-1}[i_{t-1}]`, one per tuple of indices. A
server never sees its own share in the clear, so it can only compute the
terms in which its index appears at most once:

    * if it does not appear, all the factors are known and the term is
      computed in the clear then encrypted (direct fold)
    * if it appears once, the product of the other factors is applied as a
      scalar to the encryption of the hidden factor (homomorphic fold)

Each term goes to the lowest server able to compute it. For three inputs,
server 0 receives every term with at most one zero index and server 1 all
the others, while the remaining servers stay idle.
"""
import itertools
import functools
import collections

import prs

Term = collections.namedtuple('Term', ['indices', 'hidden'])
Term.__doc__ = """A cross-term assigned to a server

Attributes:
    indices (tuple): the share index for each input
    hidden (int): the input position holding the server's own share, whose
        ciphertext is used homomorphically; `None` for a direct fold
"""


@functools.lru_cache(maxsize=None)
def term_partition(n_inputs, n_servers):
    """Compute the terms handled by each server

    Arguments:
        n_inputs (int): the number of multiplied inputs
        n_servers (int): the number of servers

    Returns:
        tuple: one tuple of `Term` per server; together they contain every
            tuple of indices from `range(n_servers)^n_inputs` exactly once

    Raises:
        prs.PreconditionViolation: some term cannot be computed by any server
    """
    if n_inputs < 1 or n_servers < 1:
        raise prs.PreconditionViolation('need at least one input and one server')
    roles = [[] for _ in range(n_servers)]
    for indices in itertools.product(range(n_servers), repeat=n_inputs):
        for server in range(n_servers):
            positions = [i for i, index in enumerate(indices) if index == server]
            if len(positions) <= 1:
                break
        else:
            raise prs.PreconditionViolation(
                'no server can compute term {} with {} servers'.format(indices, n_servers)
            )
        hidden = positions[0] if positions else None
        roles[server].append(Term(indices, hidden))
    return tuple(tuple(role) for role in roles)


def role_counts(n_inputs, n_servers):
    """Number of (direct, homomorphic) terms of each server"""
    return [
        (
            sum(1 for term in role if term.hidden is None),
            sum(1 for term in role if term.hidden is not None),
        )
        for role in term_partition(n_inputs, n_servers)
    ]
