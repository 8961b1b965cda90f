#!/usr/bin/env python3
import random
import argparse

import util
import prs
import hss
import sharing
import partition


def run_demo(rng, k, n_bits, n_servers, n_inputs, base_size, processes):
    util.debug(1, 'Launching demo with k={}, n_bits={}'.format(k, n_bits))

    with util.Timer('Key generation') as keygen_timer:
        pk, sk = prs.generate_prs_keypair(k, n_bits, rng)

    with sk:
        util.debug(2, 'p:', sk.p)
        util.debug(2, 'q:', sk.q)
        util.debug(2, 'n:', pk.n)
        util.debug(2, 'y:', pk.y)
        util.debug(2, 'k:', pk.k)
        util.debug(2, '2^k:', pk.k_2)

        # direct computation
        inputs = [util.randbits(rng, k) for _ in range(n_inputs)]
        util.debug(2, 'inputs =', inputs)
        with util.Timer('Direct computation') as direct_timer:
            clear_result = hss.direct_evaluate(inputs, pk)

        # sharing
        with util.Timer('Sharing') as share_timer:
            share_vectors, encrypted_share_vectors = sharing.share_inputs(
                inputs, pk, n_servers, base_size, rng
            )

        # evaluation
        for index, (n_direct, n_homomorphic) in enumerate(partition.role_counts(n_inputs, n_servers)):
            util.debug(2, 'S{} handles {} direct and {} homomorphic terms'.format(
                index+1, n_direct, n_homomorphic)
            )
        if processes is None:
            partial_results = []
            eval_times = []
            for index in range(n_servers):
                util.debug(1, 'S{} starts evaluation'.format(index+1))
                with util.Timer('S{} evaluation'.format(index+1)) as timer:
                    partial_results.append(hss.evaluate(
                        index, share_vectors, encrypted_share_vectors, pk, base_size, rng
                    ))
                eval_times.append(timer.elapsed)
                util.debug(2, 'S{} outputs: {}'.format(index+1, partial_results[-1].raw_value))
            eval_time = sum(eval_times[1:], eval_times[0]) / n_servers
            util.debug(1, 'Average evaluation time: {}'.format(eval_time))
        else:
            with util.Timer('Concurrent evaluation') as timer:
                partial_results = hss.evaluate_all(
                    share_vectors, encrypted_share_vectors, pk, base_size, processes
                )
            eval_time = timer.elapsed

        # decoding
        with util.Timer('Decoding') as decode_timer:
            result = hss.decode(partial_results, sk)

    util.debug(1, 'Original result:', clear_result)
    util.debug(1, 'Result from decoding:', result)
    hss_time = keygen_timer.elapsed + share_timer.elapsed + eval_time + decode_timer.elapsed
    util.debug(1, 'HSS time elapsed: {}'.format(hss_time))
    util.debug(1, 'Direct computation time elapsed: {}'.format(direct_timer.elapsed))

    assert result == clear_result


def main():
    parser = argparse.ArgumentParser()
    parser.description = 'Homomorphic secret sharing of a product with PRS encryption'
    parser.add_argument('--debug', '-d', default=1, type=int)
    parser.add_argument('--n-bits', default=4096, type=int)
    parser.add_argument('--k', '-k', default=None, type=int, help='defaults to n_bits/4')
    parser.add_argument('--servers', '-n', default=10, type=int)
    parser.add_argument('--inputs', '-t', default=3, type=int)
    parser.add_argument('--base-size', default=512, type=int)
    parser.add_argument('--processes', default=None, type=int)
    parser.add_argument('seed', default=None, type=int, nargs='?')
    args = parser.parse_args()

    util.debug_level = args.debug

    if args.seed is None:
        rng = random.SystemRandom()
    else:
        print('Seed: {}'.format(args.seed))
        rng = random.Random(args.seed)

    k = args.k if args.k is not None else args.n_bits // 4
    base_size = min(args.base_size, k)

    run_demo(rng, k, args.n_bits, args.servers, args.inputs, base_size, args.processes)
    util.debug(1, 'All done!')


if __name__ == '__main__':
    main()
