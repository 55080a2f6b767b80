import hashlib
import secrets

WORD_BITS = 256


class WordSource:
    """
    Produces the 256-bit random words a coordinator delivers.

    "deterministic" derives each word from the request id and its index so a
    local run is reproducible; "secure" draws from `secrets`.
    """

    def __init__(self, mode: str = "deterministic"):
        if mode not in ("deterministic", "secure"):
            raise ValueError(f"Unknown word source: {mode}")
        self.mode = mode

    @staticmethod
    def derive_word(request_id: int, index: int) -> int:
        """Hash of the 32-byte big-endian request id and index."""
        payload = request_id.to_bytes(32, "big") + index.to_bytes(32, "big")
        return int.from_bytes(hashlib.sha256(payload).digest(), "big")

    @staticmethod
    def random_word() -> int:
        """Returns a cryptographically strong integer in [0, 2**256)."""
        return secrets.randbits(WORD_BITS)

    def words_for(self, request_id: int, num_words: int) -> list:
        if self.mode == "secure":
            return [self.random_word() for _ in range(num_words)]
        return [self.derive_word(request_id, i) for i in range(num_words)]
