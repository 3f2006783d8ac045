from typing import List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from .errors import DerivationError, NoValidAddressError

MAX_SEEDS = 16
MAX_SEED_LEN = 32
VAULT_AUTHORITY_SEED = b"vault"


def _create_program_address(seeds: List[bytes], program_id: Pubkey) -> Optional[Pubkey]:
    try:
        return Pubkey.create_program_address(seeds, program_id)
    except (KeyboardInterrupt, SystemExit):
        raise
    # solders reports an on-curve candidate as a Rust panic, which is not an Exception subclass.
    except BaseException:  # noqa: BLE001
        return None


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Find the program address for ``seeds``, searching bumps from 255 down.

    The result has no private key and matches ``Pubkey.find_program_address``.
    """
    seeds = [bytes(seed) for seed in seeds]
    # one slot is reserved for the bump seed
    if len(seeds) >= MAX_SEEDS:
        raise DerivationError(f"At most {MAX_SEEDS - 1} seeds are allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"Seed {seed!r} exceeds {MAX_SEED_LEN} bytes")
    for bump in range(255, 0, -1):
        address = _create_program_address([*seeds, bytes([bump])], program_id)
        if address is not None:
            return address, bump
    raise NoValidAddressError(seeds, program_id)


def vault_authority(program_id: Pubkey, seed: bytes = VAULT_AUTHORITY_SEED) -> Pubkey:
    return derive([seed], program_id)[0]
