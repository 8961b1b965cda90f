#!/usr/bin/env python3
"""Mock implementation of the PRS cryptosystem

This is mostly useful for testing the correctness of protocols relying on the
PRS cryptosystem without incurring the computational cost of actually using
it: the ciphertexts simply hold the message modulo `2^k`.

The main entry point of this module is `generate_mock_keypair()`.
"""
import prs


def generate_mock_keypair(k=16, *args, **kwargs):
    """Generate a pair of mock keys

    Arguments:
        k (int): the size of the messages, in bits

    Returns:
        tuple: pair of two elements, usually named respectively `pk`
            (`MockPRSPublicKey`), and `sk` (`MockPRSSecretKey`)
    """
    sk = MockPRSSecretKey(k)
    return sk.public_key, sk


class MockPRSPublicKey:
    """Mock public key for the PRS cryptosystem

    Attributes:
        k (int): the size of the messages, in bits
        k_2 (int): cached value of `2^k`, the plaintext modulus
    """
    def __init__(self, k):
        """Constructor"""
        self.k = k
        self.k_2 = 2**k

    def __eq__(self, other):
        if not isinstance(other, MockPRSPublicKey):
            return NotImplemented
        return self.k == other.k

    def __hash__(self):
        return hash(self.k)

    def encrypt(self, m, base_size=None, rng=None, randomize=True):
        """Encrypt a message m into a mock ciphertext

        Arguments:
            m (int): the message to be encrypted
            base_size (int, optional): checked like for the actual scheme,
                otherwise ignored
            rng: ignored
            randomize: ignored

        Returns:
            MockPRSCiphertext: a ciphertext for the given integer `m`
        """
        if base_size is not None and not 0 < base_size <= self.k:
            raise prs.PreconditionViolation('base_size must be in (0, {}] (got {})'.format(self.k, base_size))
        return MockPRSCiphertext(self, m % self.k_2)


class MockPRSSecretKey:
    """Mock secret key for the PRS cryptosystem

    Attributes:
        public_key (MockPRSPublicKey): the corresponding public key
    """
    def __init__(self, k):
        """Constructor"""
        self.public_key = MockPRSPublicKey(k)

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        pass

    def decrypt(self, ciphertext):
        """Decrypt a mock ciphertext

        Arguments:
            ciphertext (MockPRSCiphertext): the ciphertext to be decrypted

        Returns:
            int: the message represented in the ciphertext
        """
        assert ciphertext.public_key == self.public_key
        return ciphertext.raw_value


class MockPRSCiphertext:
    """Mock ciphertext from the PRS cryptosystem

    Attributes:
        public_key (MockPRSPublicKey): the mock PRS public key used to
            generate this ciphertext
        raw_value (int): the message itself, modulo `2^k`
    """
    def __init__(self, public_key, raw_value):
        """Constructor

        Arguments:
            public_key (MockPRSPublicKey): the mock PRS public key
            raw_value (int): the clear message
        """
        self.public_key = public_key
        self.raw_value = raw_value

    def __add__(self, other):
        """Homomorphically add two mock PRS ciphertexts together"""
        pk = self.public_key
        if isinstance(other, MockPRSCiphertext):
            if other.public_key != pk:
                raise ValueError('cannot sum values under different public keys')
            other = other.raw_value
        return MockPRSCiphertext(pk, (self.raw_value + other) % pk.k_2)

    def __radd__(self, other):
        return self + other

    def __mul__(self, other):
        """Homomorphically multiply a mock PRS ciphertext by an integer

        Note that it is not possible to perform this operation between two
        (mock) PRS ciphertexts since the cryptosystem is only partially
        homomorphic.
        """
        pk = self.public_key
        if isinstance(other, MockPRSCiphertext):
            raise NotImplementedError('PRS is only additively homomorphic')
        return MockPRSCiphertext(pk, self.raw_value * other % pk.k_2)

    def __rmul__(self, other):
        return self * other
