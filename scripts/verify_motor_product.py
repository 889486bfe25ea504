"""Derive the motor product from blade multiplication and check compose() against it."""
import torch

from pga_anim.pga.algebra import compose
from pga_anim.pga.motors import normalize

# Motor slots as blades of basis vectors, e.g. e31 is e3 e1 (NOT e13!)
# 0:s, 1:e23, 2:e31, 3:e12, 4:e01, 5:e02, 6:e03, 7:e0123
MOTOR_BLADES = [
    (),
    (2, 3),
    (3, 1),
    (1, 2),
    (0, 1),
    (0, 2),
    (0, 3),
    (0, 1, 2, 3),
]
NAMES = ["s", "e23", "e31", "e12", "e01", "e02", "e03", "e0123"]

# e0^2 = 0, e1^2 = e2^2 = e3^2 = 1
METRIC = {0: 0, 1: 1, 2: 1, 3: 1}


def multiply_blades(a, b):
    """
    Multiply two blades, returning (canonical_blade, sign).

    Adjacent vectors are swapped into ascending order (sign flip per swap)
    and equal neighbours are contracted with the metric. A zero sign means
    the product vanishes.
    """
    vectors = list(a) + list(b)
    sign = 1
    i = 0
    while i < len(vectors) - 1:
        if vectors[i] == vectors[i + 1]:
            sign *= METRIC[vectors[i]]
            if sign == 0:
                return (), 0
            del vectors[i:i + 2]
            i = max(i - 1, 0)
        elif vectors[i] > vectors[i + 1]:
            vectors[i], vectors[i + 1] = vectors[i + 1], vectors[i]
            sign = -sign
            i = max(i - 1, 0)
        else:
            i += 1
    return tuple(vectors), sign


def canonical(blade):
    return multiply_blades(blade, ())


def product_table():
    """table[i][j] = (k, sign) with slot_i * slot_j = sign * slot_k, or None."""
    lookup = {}
    for k, blade in enumerate(MOTOR_BLADES):
        form, sign = canonical(blade)
        lookup[form] = (k, sign)

    table = []
    for a in MOTOR_BLADES:
        row = []
        for b in MOTOR_BLADES:
            form, sign = multiply_blades(a, b)
            if sign == 0:
                row.append(None)
                continue
            k, slot_sign = lookup[form]
            row.append((k, sign * slot_sign))
        table.append(row)
    return table


def reference_product(a, b, table):
    result = torch.zeros(torch.broadcast_shapes(a.shape, b.shape), dtype=a.dtype)
    for i in range(8):
        for j in range(8):
            entry = table[i][j]
            if entry is None:
                continue
            k, sign = entry
            result[..., k] += sign * a[..., i] * b[..., j]
    return result


def main():
    table = product_table()

    print("Motor product table (row * column):")
    print("       " + "".join(f"{n:>8}" for n in NAMES))
    for i, row in enumerate(table):
        cells = []
        for entry in row:
            if entry is None:
                cells.append(f"{'0':>8}")
            else:
                k, sign = entry
                cells.append(f"{('-' if sign < 0 else '') + NAMES[k]:>8}")
        print(f"{NAMES[i]:>7}" + "".join(cells))

    generator = torch.Generator().manual_seed(0)
    a = torch.randn(1000, 8, generator=generator, dtype=torch.float64)
    b = torch.randn(1000, 8, generator=generator, dtype=torch.float64)

    for label, x, y in [("raw", a, b), ("normalized", normalize(a), normalize(b))]:
        error = (compose(x, y) - reference_product(x, y, table)).abs().max().item()
        status = "OK" if error < 1e-12 else "MISMATCH"
        print(f"compose vs blade product ({label}): max error {error:.3e} [{status}]")


if __name__ == "__main__":
    main()
