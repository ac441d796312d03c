# File location: data/synthetic/generate_data.py

"""Generate the standard linear test systems and save them to disk."""

import jax.numpy as jnp
import jax.random as jr
import numpy as np
import pandas as pd
from pathlib import Path

from jax_krylov.linalg.problems import (
    banded_test_matrix, poisson_2d, random_system, random_spd_matrix,
    clustered_spectrum_system
)


def generate_systems(key, n_banded=500, n_random=100, grid=(20, 20)):
    """Build a dictionary name -> (A, b) of test systems."""
    systems = {}

    # Sauer's banded non-symmetric example, b = ones
    A = banded_test_matrix(n_banded)
    systems['banded'] = (A, jnp.ones(n_banded))

    # 2D Poisson problem with a constant source
    A = poisson_2d(*grid)
    systems['poisson_2d'] = (A, jnp.ones(A.shape[0]))

    key, subkey = jr.split(key)
    systems['random_nonsymmetric'] = random_system(subkey, n_random)

    key, subkey = jr.split(key)
    A = random_spd_matrix(subkey, n_random)
    key, subkey = jr.split(key)
    systems['random_spd'] = (A, jr.normal(subkey, (n_random,)))

    systems['clustered_spectrum'] = clustered_spectrum_system(n_random, [1.0, 2.0, 3.0, 4.0])

    return systems


def summarize_system(name, A, b):
    """One row of the summary table."""
    A_np = np.asarray(A)
    return {
        'name': name,
        'n': A_np.shape[0],
        'nnz': int(np.count_nonzero(A_np)),
        'symmetric': bool(np.allclose(A_np, A_np.T)),
        'condition_number': float(np.linalg.cond(A_np)),
        'rhs_norm': float(np.linalg.norm(np.asarray(b))),
    }


def save_datasets():
    """Generate and save all test systems."""
    key = jr.PRNGKey(42)
    data_dir = Path(__file__).parent
    data_dir.mkdir(exist_ok=True)

    systems = generate_systems(key)

    rows = []
    for name, (A, b) in systems.items():
        np.savez(data_dir / f'{name}_system.npz', A=np.asarray(A), b=np.asarray(b))
        rows.append(summarize_system(name, A, b))

    # Summary table as CSV
    summary_df = pd.DataFrame(rows)
    summary_df.to_csv(data_dir / 'systems_summary.csv', index=False)

    print("Synthetic linear systems generated successfully!")


if __name__ == "__main__":
    save_datasets()
