#!/usr/bin/env python3
import gc
import random
import itertools
import unittest

import util
import mock
import prs
import hss
import sharing
import partition

_K = 8
_N_BITS = 128


class PartiallyHomomorphicSchemeFixture:
    def test_decrypt(self):
        pk, sk = self.keypair
        self.assertEqual(sk.decrypt(pk.encrypt(0)), 0)
        self.assertEqual(sk.decrypt(pk.encrypt(1)), 1)
        self.assertEqual(sk.decrypt(pk.encrypt(12)), 12)
        self.assertEqual(sk.decrypt(pk.encrypt(pk.k_2 - 1)), pk.k_2 - 1)

        # values are reduced modulo 2^k
        self.assertEqual(sk.decrypt(pk.encrypt(pk.k_2 + 3)), 3)
        self.assertEqual(sk.decrypt(pk.encrypt(-1)), pk.k_2 - 1)

    def test_additive(self):
        pk, sk = self.keypair
        a = pk.encrypt(42)
        b = pk.encrypt(9)

        # additions
        self.assertEqual(sk.decrypt(a + b), 51)
        self.assertEqual(sk.decrypt(a + 9), 51)
        self.assertEqual(sk.decrypt(42 + b), 51)
        self.assertEqual(sk.decrypt(a + pk.encrypt(pk.k_2 - 42)), 0)

        # scalar multiplication
        self.assertEqual(sk.decrypt(a * 3), 126)
        self.assertEqual(sk.decrypt(2 * b), 18)
        self.assertEqual(sk.decrypt(a * pk.k_2), 0)
        self.assertEqual(sk.decrypt(b * 0), 0)

        # exceptions
        self.assertRaises(NotImplementedError, a.__mul__, b)

    def test_random_homomorphism(self):
        pk, sk = self.keypair
        rng = random.Random(1)
        for _ in range(20):
            m1 = rng.randrange(pk.k_2)
            m2 = rng.randrange(pk.k_2)
            a = rng.randrange(2**40)
            c1 = pk.encrypt(m1)
            c2 = pk.encrypt(m2)
            self.assertEqual(sk.decrypt(c1 + c2), (m1 + m2) % pk.k_2)
            self.assertEqual(sk.decrypt(c1 * a), a * m1 % pk.k_2)

    def test_identity(self):
        pk, sk = self.keypair
        one = pk.encrypt(0, randomize=False)
        self.assertEqual(sk.decrypt(one), 0)
        c = pk.encrypt(77)
        self.assertEqual(sk.decrypt(one + c), 77)

    def test_base_size(self):
        pk, sk = self.keypair
        self.assertRaises(prs.PreconditionViolation, pk.encrypt, 1, 0)
        self.assertRaises(prs.PreconditionViolation, pk.encrypt, 1, pk.k + 1)
        self.assertEqual(sk.decrypt(pk.encrypt(5, base_size=1)), 5)
        self.assertEqual(sk.decrypt(pk.encrypt(5, base_size=pk.k)), 5)


class HSSFixture:
    def run_protocol(self, values, n_servers, base_size=None, rng=None):
        pk, sk = self.keypair
        share_vectors, encrypted_share_vectors = sharing.share_inputs(
            values, pk, n_servers, base_size, rng
        )
        partial_results = [
            hss.evaluate(index, share_vectors, encrypted_share_vectors, pk, base_size, rng)
            for index in range(n_servers)
        ]
        return partial_results, hss.decode(partial_results, sk)

    def test_product(self):
        pk, sk = self.keypair
        rng = random.Random(2)
        for n_servers in [2, 3, 5]:
            values = [rng.randrange(pk.k_2) for _ in range(3)]
            _, result = self.run_protocol(values, n_servers, rng=rng)
            self.assertEqual(result, hss.direct_evaluate(values, pk))
            self.assertEqual(result, values[0] * values[1] * values[2] % pk.k_2)

    def test_edge_values(self):
        pk, sk = self.keypair
        for values in [[0, 0, 0], [0, 5, 7], [1, 1, 1], [pk.k_2 - 1] * 3]:
            _, result = self.run_protocol(values, 4)
            self.assertEqual(result, hss.direct_evaluate(values, pk))

    def test_idle_servers(self):
        pk, sk = self.keypair
        identity = pk.encrypt(0, randomize=False)
        partial_results, _ = self.run_protocol([3, 4, 5], 6)
        for partial_result in partial_results[2:]:
            self.assertEqual(partial_result.raw_value, identity.raw_value)

    def test_other_arities(self):
        pk, sk = self.keypair
        rng = random.Random(3)
        for n_inputs, n_servers in [(1, 2), (2, 2), (2, 4), (4, 3), (5, 3)]:
            values = [rng.randrange(pk.k_2) for _ in range(n_inputs)]
            _, result = self.run_protocol(values, n_servers, rng=rng)
            self.assertEqual(result, hss.direct_evaluate(values, pk))


class TestMock(unittest.TestCase, PartiallyHomomorphicSchemeFixture, HSSFixture):
    keypair = mock.generate_mock_keypair(_K)


class TestPRS(unittest.TestCase, PartiallyHomomorphicSchemeFixture, HSSFixture):
    @classmethod
    def setUpClass(cls):
        cls.keypair = prs.generate_prs_keypair(_K, _N_BITS)

    def test_keygen(self):
        pk, sk = self.keypair

        # check p and q are primes of the right form
        self.assertTrue(util.is_prime(sk.p))
        self.assertTrue(util.is_prime(sk.q))
        self.assertNotEqual(sk.p, sk.q)
        self.assertEqual(sk.p % 2**_K, 1)
        self.assertEqual(sk.q % 4, 3)

        # check their sizes
        self.assertEqual(sk.p.bit_length(), _N_BITS // 2)
        self.assertEqual(sk.q.bit_length(), _N_BITS // 2)

        # check consistency of n and y
        self.assertEqual(pk.n, sk.p * sk.q)
        self.assertEqual(pk.k, _K)
        self.assertEqual(pk.k_2, 2**_K)
        self.assertEqual(util.gcd(pk.y, pk.n), 1)
        self.assertEqual(util.jacobi(pk.y, sk.p), -1)
        self.assertEqual(util.jacobi(pk.y, sk.q), -1)
        self.assertEqual(util.jacobi(pk.y, pk.n), 1)

        # check the decryption ladder
        self.assertEqual(len(sk.d), _K - 1)
        g = util.powmod(pk.y, (sk.p - 1) // 2**_K, sk.p)
        self.assertEqual(sk.d[0] * g % sk.p, 1)
        for previous, current in zip(sk.d, sk.d[1:]):
            self.assertEqual(current, previous * previous % sk.p)

    def test_round_trip(self):
        pk, sk = self.keypair
        for base_size in [1, _K // 2, _K]:
            for m in range(pk.k_2):
                self.assertEqual(sk.decrypt(pk.encrypt(m, base_size)), m)

        # same, with raw values
        self.assertEqual(sk.decrypt(pk.encrypt(12).raw_value), 12)

    def test_encrypt(self):
        pk, sk = self.keypair

        # check the ciphertexts are in Z_n and actually randomized
        ciphertexts = [pk.encrypt(12) for _ in range(10)]
        for c in ciphertexts:
            self.assertGreater(c.raw_value, 0)
            self.assertLess(c.raw_value, pk.n)
            self.assertEqual(sk.decrypt(c), 12)
        self.assertGreater(len(set(ciphertexts)), 1)

        # deterministic encryption
        self.assertEqual(pk.encrypt(12, randomize=False).raw_value, util.powmod(pk.y, 12, pk.n))
        self.assertEqual(pk.encrypt(0, randomize=False).raw_value, 1)

    def test_different_keys(self):
        pk, sk = self.keypair
        pkk, skk = prs.generate_prs_keypair(_K, _N_BITS)
        self.assertRaises(ValueError, pk.encrypt(1).__add__, pkk.encrypt(2))

    def test_small_message_size(self):
        pk, sk = prs.generate_prs_keypair(1, 32)
        self.assertEqual(sk.d, [])
        for _ in range(5):
            self.assertEqual(sk.decrypt(pk.encrypt(0)), 0)
            self.assertEqual(sk.decrypt(pk.encrypt(1)), 1)
        self.assertEqual(sk.decrypt(pk.encrypt(1) + pk.encrypt(1)), 0)

    def test_preconditions(self):
        rng = random.Random(4)
        state = rng.getstate()
        self.assertRaises(prs.PreconditionViolation, prs.generate_prs_keypair, 0, 64, rng)
        self.assertRaises(prs.PreconditionViolation, prs.generate_prs_keypair, 4, 1, rng)
        self.assertRaises(prs.PreconditionViolation, prs.generate_prs_keypair, 4, 65, rng)
        self.assertRaises(prs.PreconditionViolation, prs.generate_prs_keypair, 32, 64, rng)
        self.assertRaises(prs.PreconditionViolation, prs.generate_prs_keypair, 4, 64, rng, 0)
        self.assertEqual(rng.getstate(), state)

    def test_non_termination(self):
        # with 2-bit primes, p = q = 3 is the only candidate
        self.assertRaises(
            prs.GenerationNonTermination,
            prs.generate_prs_keypair, 1, 4, None, 50,
        )

    def test_wipe(self):
        pk, sk = prs.generate_prs_keypair(_K, _N_BITS)
        c = pk.encrypt(3)
        with sk:
            self.assertEqual(sk.decrypt(c), 3)
        self.assertEqual(sk.d, [])
        self.assertEqual(sk.p, 0)
        self.assertEqual(sk.q, 0)
        self.assertRaises(ValueError, sk.decrypt, c)

    def test_wipe_on_destruction(self):
        pk, sk = prs.generate_prs_keypair(_K, _N_BITS)
        ladder = sk.d
        self.assertEqual(len(ladder), _K - 1)
        del sk
        gc.collect()
        self.assertEqual(ladder, [])

    def test_concurrent_evaluation(self):
        pk, sk = self.keypair
        values = [11, 22, 33]
        share_vectors, encrypted_share_vectors = sharing.share_inputs(values, pk, 4)
        partial_results = hss.evaluate_all(share_vectors, encrypted_share_vectors, pk, processes=2)
        self.assertEqual(len(partial_results), 4)
        self.assertEqual(hss.decode(partial_results, sk), hss.direct_evaluate(values, pk))

        # sequential version
        partial_results = hss.evaluate_all(share_vectors, encrypted_share_vectors, pk)
        self.assertEqual(hss.decode(partial_results, sk), hss.direct_evaluate(values, pk))

    def test_scenario(self):
        pk, sk = prs.generate_prs_keypair(16, 512)
        values = [12345, 54321, 1111]
        share_vectors, encrypted_share_vectors = sharing.share_inputs(values, pk, 10, base_size=8)
        partial_results = [
            hss.evaluate(index, share_vectors, encrypted_share_vectors, pk, base_size=8)
            for index in range(10)
        ]
        result = hss.decode(partial_results, sk)
        self.assertEqual(result, (12345 * 54321 * 1111) % 65536)
        self.assertEqual(result, hss.direct_evaluate(values, pk))


class TestSharing(unittest.TestCase):
    def test_random_split(self):
        rng = random.Random(5)
        k_2 = 2**_K
        for n_servers in [1, 2, 3, 10]:
            for value in [0, 1, 17, k_2 - 1]:
                shares = sharing.random_split(value, n_servers, k_2, rng)
                self.assertEqual(len(shares), n_servers)
                self.assertTrue(all(0 <= s < k_2 for s in shares))
                self.assertEqual(sharing.reconstruct(shares, k_2), value)
        self.assertEqual(sharing.random_split(42, 1, k_2, rng), [42])

    def test_random_split_preconditions(self):
        self.assertRaises(prs.PreconditionViolation, sharing.random_split, 3, 0, 16)
        self.assertRaises(prs.PreconditionViolation, sharing.random_split, 16, 2, 16)
        self.assertRaises(prs.PreconditionViolation, sharing.random_split, -1, 2, 16)

    def test_share_inputs_preconditions(self):
        pk, sk = mock.generate_mock_keypair(_K)
        rng = random.Random(1)
        state = rng.getstate()

        # an invalid later input is rejected before the first one is shared
        self.assertRaises(prs.PreconditionViolation, sharing.share_inputs, [5, pk.k_2], pk, 4, None, rng)
        self.assertRaises(prs.PreconditionViolation, sharing.share_inputs, [5, -1], pk, 4, None, rng)
        self.assertRaises(prs.PreconditionViolation, sharing.share_inputs, [5, 6], pk, 0, None, rng)
        self.assertRaises(prs.PreconditionViolation, sharing.share_inputs, [5, 6], pk, 4, _K + 1, rng)
        self.assertRaises(prs.PreconditionViolation, sharing.share, pk.k_2, pk, 4, None, rng)
        self.assertEqual(rng.getstate(), state)

    def test_share(self):
        pk, sk = prs.generate_prs_keypair(_K, _N_BITS)
        shares, ciphertexts = sharing.share(200, pk, 5)
        self.assertEqual(sharing.reconstruct(shares, pk.k_2), 200)
        self.assertEqual([sk.decrypt(c) for c in ciphertexts], shares)
        self.assertRaises(prs.PreconditionViolation, sharing.share, 200, pk, 5, _K + 1)

    def test_reproducible(self):
        pk, sk = mock.generate_mock_keypair(_K)
        a = sharing.share_inputs([1, 2, 3], pk, 4, rng=random.Random(6))[0]
        b = sharing.share_inputs([1, 2, 3], pk, 4, rng=random.Random(6))[0]
        self.assertEqual(a, b)


class TestPartition(unittest.TestCase):
    def test_exhaustive(self):
        for n_inputs, n_servers in [(1, 1), (2, 2), (3, 2), (3, 3), (3, 10), (4, 3), (5, 4)]:
            roles = partition.term_partition(n_inputs, n_servers)
            self.assertEqual(len(roles), n_servers)
            terms = [term.indices for role in roles for term in role]
            self.assertEqual(len(terms), n_servers**n_inputs)
            self.assertEqual(
                set(terms),
                set(itertools.product(range(n_servers), repeat=n_inputs)),
            )

    def test_visibility(self):
        for n_inputs, n_servers in [(3, 5), (4, 3)]:
            roles = partition.term_partition(n_inputs, n_servers)
            for server, role in enumerate(roles):
                for term in role:
                    positions = [i for i, j in enumerate(term.indices) if j == server]
                    self.assertLessEqual(len(positions), 1)
                    if positions:
                        self.assertEqual(term.hidden, positions[0])
                    else:
                        self.assertIsNone(term.hidden)

    def test_three_inputs(self):
        for n_servers in range(2, 8):
            N = n_servers
            counts = partition.role_counts(3, N)
            self.assertEqual(counts[0], ((N-1)**3, 3*(N-1)**2))
            self.assertEqual(counts[1], (1 + 3*(N-2), 3))
            for count in counts[2:]:
                self.assertEqual(count, (0, 0))
            self.assertEqual((N-1)**3 + 3*(N-1)**2 + 1 + 3 + 3*(N-2), N**3)

            roles = partition.term_partition(3, N)
            for term in roles[0]:
                self.assertLessEqual(term.indices.count(0), 1)
            for term in roles[1]:
                self.assertGreaterEqual(term.indices.count(0), 2)

    def test_impossible(self):
        self.assertRaises(prs.PreconditionViolation, partition.term_partition, 3, 1)
        self.assertRaises(prs.PreconditionViolation, partition.term_partition, 4, 2)
        self.assertRaises(prs.PreconditionViolation, partition.term_partition, 0, 2)


class TestEvaluation(unittest.TestCase):
    def test_server_view(self):
        pk, sk = mock.generate_mock_keypair(_K)
        share_vectors, encrypted_share_vectors = sharing.share_inputs([5, 6, 7], pk, 3)
        view = hss.ServerView(1, share_vectors, encrypted_share_vectors)
        self.assertEqual(view.plaintext(0, 0), share_vectors[0][0])
        self.assertEqual(view.plaintext(2, 2), share_vectors[2][2])
        self.assertRaises(prs.PreconditionViolation, view.plaintext, 0, 1)
        self.assertIs(view.ciphertext(2), encrypted_share_vectors[2][1])
        self.assertEqual(view.plaintexts[1], [share_vectors[1][0], None, share_vectors[1][2]])

    def test_invalid_inputs(self):
        pk, sk = mock.generate_mock_keypair(_K)
        share_vectors, encrypted_share_vectors = sharing.share_inputs([5, 6, 7], pk, 3)
        self.assertRaises(prs.PreconditionViolation, hss.evaluate, 3, share_vectors, encrypted_share_vectors, pk)
        self.assertRaises(prs.PreconditionViolation, hss.evaluate, -1, share_vectors, encrypted_share_vectors, pk)
        self.assertRaises(prs.PreconditionViolation, hss.evaluate, 0, share_vectors, encrypted_share_vectors[:2], pk)
        self.assertRaises(prs.PreconditionViolation, hss.evaluate, 0, share_vectors, encrypted_share_vectors, pk, 0)
        share_vectors[0] = share_vectors[0][:2]
        self.assertRaises(prs.PreconditionViolation, hss.evaluate, 0, share_vectors, encrypted_share_vectors, pk)

    def test_direct_evaluate(self):
        pk, sk = mock.generate_mock_keypair(16)
        values = [12345, 54321, 1111]
        first = hss.direct_evaluate(values, pk)
        self.assertEqual(first, (12345 * 54321 * 1111) % 65536)
        for _ in range(3):
            self.assertEqual(hss.direct_evaluate(values, pk), first)


if __name__ == '__main__':
    unittest.main()
