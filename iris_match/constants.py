# iris_match/constants.py
from pydantic import BaseModel, ConfigDict, model_validator

# Iris code shape
IRIS_COLUMNS = 200
IRIS_COLUMN_LEN = 64
IRIS_ROWS_PER_BLOCK = 8

# Column rotations tried in each direction
IRIS_ROTATION_LIMIT = 15

# Match when at most 36% of the jointly unmasked bits differ
IRIS_MATCH_NUMERATOR = 36
IRIS_MATCH_DENOMINATOR = 100


class MatchConf(BaseModel):
    """
    Shape of the encrypted iris blocks and the match threshold.

    Each block packs rows_per_block rows of columns bits, padded by
    rotation_limit columns on each side. The inner product for rotation r
    lands at coefficient first_inner_product_index + r + rotation_limit of the
    decrypted block product.
    """

    model_config = ConfigDict(frozen=True)

    columns: int
    rows: int
    rows_per_block: int
    rotation_limit: int
    match_numerator: int = IRIS_MATCH_NUMERATOR
    match_denominator: int = IRIS_MATCH_DENOMINATOR

    @model_validator(mode="after")
    def check_shape(self):
        if min(self.columns, self.rows, self.rows_per_block) < 1 or self.rotation_limit < 0:
            raise ValueError("iris dimensions must be positive")
        if self.rows % self.rows_per_block:
            raise ValueError(f"rows_per_block={self.rows_per_block} must divide rows={self.rows}")
        if self.rotation_comparisons > self.columns:
            raise ValueError(
                f"{self.rotation_comparisons} rotations need at least that many columns"
            )
        if not 0 <= self.match_numerator <= self.match_denominator or self.match_denominator < 1:
            raise ValueError("match threshold must be a fraction in [0, 1]")
        return self

    @property
    def num_blocks(self) -> int:
        return self.rows // self.rows_per_block

    @property
    def num_cols_and_pads(self) -> int:
        return self.columns + 2 * self.rotation_limit

    @property
    def rotation_comparisons(self) -> int:
        return 2 * self.rotation_limit + 1

    @property
    def block_bit_len(self) -> int:
        return self.rows_per_block * self.columns

    @property
    def first_inner_product_index(self) -> int:
        return self.rows_per_block * self.num_cols_and_pads - self.rotation_comparisons

    def check_fits(self, yashe_conf):
        """
        Terms of a block product that wrap past x^n must land below the inner
        products, and every inner product in [-block_bit_len, block_bit_len]
        must be distinct mod t.
        """
        n, t = yashe_conf.poly.n, yashe_conf.t
        needed = self.rows_per_block * self.num_cols_and_pads + 2 * self.rotation_limit
        if needed > n:
            raise ValueError(f"blocks need n >= {needed}, ring has n={n}")
        if 2 * self.block_bit_len >= t:
            raise ValueError(
                f"block inner products need t > {2 * self.block_bit_len}, got t={t}"
            )


FULL_BITS = MatchConf(
    columns=IRIS_COLUMNS,
    rows=IRIS_COLUMN_LEN,
    rows_per_block=IRIS_ROWS_PER_BLOCK,
    rotation_limit=IRIS_ROTATION_LIMIT,
)
MIDDLE_BITS = MatchConf(
    columns=IRIS_COLUMNS // 2,
    rows=IRIS_COLUMN_LEN // 2,
    rows_per_block=IRIS_ROWS_PER_BLOCK,
    rotation_limit=IRIS_ROTATION_LIMIT,
)
