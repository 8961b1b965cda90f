#!/usr/bin/env python3
"""Implementation of the 2^k-th power residue symbol (PRS) cryptosystem

The PRS cryptosystem is a public key encryption system of messages of `k`
bits whose security rests on the difficulty of distinguishing `2^k`-th power
residues modulo `n = p × q`. Like Paillier, it is partially homomorphic for
addition: multiplying two ciphertexts yields a ciphertext of the sum of the
two messages (modulo `2^k`), and raising a ciphertext to a public power
yields a ciphertext of the scaled message.

The main entry point of this module is `generate_prs_keypair()`.
"""
import util

# number of Miller-Rabin rounds for prime candidates
MR_ITERATIONS = 25

# maximum number of candidates drawn by each search loop of the key generation
MAX_ATTEMPTS = 100000


class PreconditionViolation(ValueError):
    """Raised when the parameters of an operation are out of their domain"""


class GenerationNonTermination(RuntimeError):
    """Raised when a search of the key generation runs out of attempts

    This does not happen with sane parameters; it means the configuration
    leaves (almost) no room for the search.
    """


def generate_prs_keypair(k, n_bits, rng=None, max_attempts=MAX_ATTEMPTS):
    """Generate a pair of keys for the PRS cryptosystem

    The prime `p` is drawn such that `p = 1 mod 2^k` and `q` such that
    `q = 3 mod 4`. The public base `y` is a quadratic non-residue modulo both
    `p` and `q`, so that its Jacobi symbol modulo `n` is 1 while it is not a
    `2^k`-th residue.

    Arguments:
        k (int): the size of the messages, in bits
        n_bits (int): the number of bits for the modulus `n`; must be even and
            its half must be greater than `k`
        rng (random.Random, optional): source of randomness; defaults to
            `random.SystemRandom()`
        max_attempts (int, optional): number of candidates each search may
            draw before giving up

    Returns:
        tuple: pair of two elements, usually named respectively `pk`
            (`PRSPublicKey`), and `sk` (`PRSSecretKey`)

    Raises:
        PreconditionViolation: the parameters are invalid
        GenerationNonTermination: a search ran out of attempts
    """
    if k < 1:
        raise PreconditionViolation('k must be at least 1 (got {})'.format(k))
    if n_bits <= 1 or n_bits % 2 != 0:
        raise PreconditionViolation('n_bits must be even and greater than 1 (got {})'.format(n_bits))
    if n_bits // 2 <= k:
        raise PreconditionViolation('n_bits/2 must be greater than k (got n_bits={}, k={})'.format(n_bits, k))
    if max_attempts < 1:
        raise PreconditionViolation('max_attempts must be positive')
    rng = util.default_rng(rng)
    p_bits = n_bits // 2

    # p = 1 mod 2^k: random high bits, k low zero bits, then force the last
    for attempt in range(max_attempts):
        p = util.randbits(rng, p_bits - k) << k | 1
        if p.bit_length() == p_bits and util.is_prime(p, MR_ITERATIONS):
            break
    else:
        raise GenerationNonTermination('no prime p found in {} attempts'.format(max_attempts))
    util.debug(2, 'p found after {} attempts'.format(attempt + 1))
    q_bits = p.bit_length()

    # q = 3 mod 4, of the same size as p
    for attempt in range(max_attempts):
        q = util.randbits(rng, p_bits - 2) << 2 | 3
        if q.bit_length() >= q_bits and q != p and util.is_prime(q, MR_ITERATIONS):
            break
    else:
        raise GenerationNonTermination('no prime q found in {} attempts'.format(max_attempts))
    util.debug(2, 'q found after {} attempts'.format(attempt + 1))

    # y in J_n \ QR_n, with J(y/p) = J(y/q) = -1
    n = p * q
    for attempt in range(max_attempts):
        y = util.randbits(rng, n_bits)
        if util.gcd(y, n) != 1:
            continue
        if util.jacobi(y, p) == -1 and util.jacobi(y, q) == -1:
            break
    else:
        raise GenerationNonTermination('no base y found in {} attempts'.format(max_attempts))
    util.debug(2, 'y found after {} attempts'.format(attempt + 1))

    sk = PRSSecretKey(p, q, y % n, k)
    return sk.public_key, sk


class PRSPublicKey:
    """Public key for the PRS cryptosystem

    Attributes:
        n (int): the modulus, product of the two secret primes
        y (int): public base, a unit of Z_n with Jacobi symbol 1 which is not
            a quadratic residue
        k (int): the size of the messages, in bits
        k_2 (int): cached value of `2^k`, the plaintext modulus
    """

    def __init__(self, n, y, k):
        """Constructor

        Arguments:
            n (int): parameter from the PRS cryptosystem
            y (int): parameter from the PRS cryptosystem
            k (int): parameter from the PRS cryptosystem
        """
        self.n = n
        self.y = y
        self.k = k
        self.k_2 = 2**k

    def __eq__(self, other):
        if not isinstance(other, PRSPublicKey):
            return NotImplemented
        return (self.n, self.y, self.k) == (other.n, other.y, other.k)

    def __hash__(self):
        return hash((self.n, self.y, self.k))

    def encrypt(self, m, base_size=None, rng=None, randomize=True):
        """Encrypt a message m into a ciphertext

        The ciphertext is `c = y^m × x^(2^k) mod n` where `x` is a random unit
        from `[1, 2^base_size)`.

        Arguments:
            m (int): the message to be encrypted; note that values will be
                reduced modulo `2^k`
            base_size (int, optional): size in bits of the randomizer `x`,
                from `(0, k]`; defaults to `k`
            rng (random.Random, optional): source of randomness; defaults to
                `random.SystemRandom()`
            randomize (bool, optional): when `False`, `x = 1` and the result is
                the deterministic value `y^m mod n`

        Returns:
            PRSCiphertext: a ciphertext for the given integer `m` it can be
                decrypted using the secret key corresponding to this public
                key
        """
        if base_size is None:
            base_size = self.k
        if not 0 < base_size <= self.k:
            raise PreconditionViolation('base_size must be in (0, {}] (got {})'.format(self.k, base_size))
        m %= self.k_2

        raw_value = util.powmod(self.y, m, self.n)
        if randomize:
            rng = util.default_rng(rng)
            x = util.randbits(rng, base_size)
            while x == 0 or util.gcd(x, self.n) != 1:
                x = util.randbits(rng, base_size)
            raw_value = raw_value * util.powmod(x, self.k_2, self.n) % self.n
        return PRSCiphertext(self, raw_value)


class PRSSecretKey:
    """Secret key for the PRS cryptosystem

    The secret key can be used as a context manager; its trapdoor material is
    wiped when leaving the `with` block, or else when the key is destroyed.

    Attributes:
        p (int): first prime in the factorization of `n`, `p = 1 mod 2^k`
        q (int): second prime in the factorization of `n`
        public_key (PRSPublicKey): the corresponding public key
        d (list): decryption ladder, `d[0] = y^(-(p-1)/2^k) mod p` and
            `d[i] = d[i-1]^2 mod p`, for `i` in `[0, k-2]`
    """
    def __init__(self, p, q, y, k):
        """Constructor

        Arguments:
            p (int): parameter from the PRS cryptosystem
            q (int): parameter from the PRS cryptosystem
            y (int): parameter from the PRS cryptosystem
            k (int): parameter from the PRS cryptosystem
        """
        self.p = p
        self.q = q
        self.public_key = PRSPublicKey(p*q, y, k)

        # pre-computations
        self.exponent = (p - 1) >> k  # (p-1) / 2^k
        self.d = []
        if k > 1:
            self.d.append(util.invert(util.powmod(y, self.exponent, p), p))
        for _ in range(1, k - 1):
            self.d.append(self.d[-1] * self.d[-1] % p)

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.wipe()

    def __del__(self):
        if hasattr(self, 'd'):
            self.wipe()

    def wipe(self):
        """Overwrite the trapdoor material; the key is unusable afterwards"""
        for i in range(len(self.d)):
            self.d[i] = 0
        self.d.clear()
        self.p = self.q = self.exponent = 0

    def decrypt(self, ciphertext):
        """Decrypt a ciphertext

        The bits of the message are recovered from the least significant one,
        each one being cleared from the running value with the ladder once it
        is known.

        Arguments:
            ciphertext (PRSCiphertext or int): the ciphertext to be decrypted

        Returns:
            int: the message represented in the ciphertext, from `[0, 2^k)`

            A value which is not a unit modulo `n` decrypts to garbage: the
            scheme has no integrity check.
        """
        if isinstance(ciphertext, PRSCiphertext):
            ciphertext = ciphertext.raw_value
        p = self.p
        k = self.public_key.k
        if p == 0:
            raise ValueError('the secret key has been wiped')

        m = 0
        c = util.powmod(ciphertext, self.exponent, p)
        for j in range(1, k):
            z = util.powmod(c, 1 << (k - j), p)
            if z != 1:
                m |= 1 << (j - 1)
                c = c * self.d[j - 1] % p
        if c != 1:
            m |= 1 << (k - 1)
        return m


class PRSCiphertext:
    """Ciphertext from the PRS cryptosystem

    Attributes:
        public_key (PRSPublicKey): the PRS public key used to generate this
            ciphertext
        raw_value (int): an element of Z_n, that should equals to
            `y^m x^(2^k)` where `n`, `y` and `k` are the attributes of the
            public key, `m` is the message which was encrypted and `x` is a
            random unit of Z_n
    """
    def __init__(self, public_key, raw_value):
        """Constructor

        Arguments:
            public_key (PRSPublicKey): the PRS public key
            raw_value (int): the actual ciphertext as an element of Z_n
        """
        self.public_key = public_key
        self.raw_value = raw_value

    def __eq__(self, other):
        if not isinstance(other, PRSCiphertext):
            return NotImplemented
        return self.public_key == other.public_key and self.raw_value == other.raw_value

    def __hash__(self):
        return hash((self.public_key, self.raw_value))

    def __repr__(self):
        return 'PRSCiphertext({})'.format(self.raw_value)

    def __add__(a, b):
        """Homomorphically add two PRS ciphertexts together

        Arguments:
            a (PRSCiphertext): left operand
            b (PRSCiphertext or int): right operand

        Returns:
            PRSCiphertext: decrypting this ciphertext should yield the sum of
                the values obtained by decrypting the ciphertexts `a` and `b`
                (or `b` itself), modulo `2^k`
        """
        pk = a.public_key
        if not isinstance(b, PRSCiphertext):
            b = util.powmod(pk.y, b % pk.k_2, pk.n)
        elif b.public_key != pk:
            raise ValueError('cannot sum values under different public keys')
        else:
            b = b.raw_value
        return PRSCiphertext(pk, a.raw_value * b % pk.n)

    def __radd__(a, b):
        return a + b

    def __mul__(a, b):
        """Homomorphically multiply a PRS ciphertext by an integer

        Note that it is not possible to perform this operation between two
        PRS ciphertexts since the cryptosystem is only partially homomorphic.

        Arguments:
            a (PRSCiphertext): left operand
            b (int): right operand

        Returns:
            PRSCiphertext: decrypting this ciphertext should yield the product
                of the value obtained by decrypting the ciphertext `a` with
                the integer `b`, modulo `2^k`
        """
        pk = a.public_key
        if isinstance(b, PRSCiphertext):
            raise NotImplementedError('PRS is only additively homomorphic')
        return PRSCiphertext(pk, util.powmod(a.raw_value, b % pk.k_2, pk.n))

    def __rmul__(a, b):
        return a * b
