from typing import Tuple

import numpy as np
from statsmodels.stats.weightstats import DescrStatsW


def weighted_mean_ci(values, weights, alpha: float = 0.05) -> Tuple[float, float, float, float]:
    """Return (weight_sum, weighted_mean, ci_low, ci_high) for a weighted mean.

    The interval is statsmodels' t-based ``tconfint_mean``; it treats the weights as
    frequency weights, which is an approximation for rates weighted by at-bats.
    """

    x = np.asarray(values, dtype=float)
    w = np.asarray(weights, dtype=float)
    mask = ~(np.isnan(x) | np.isnan(w))
    x, w = x[mask], w[mask]

    if x.size == 0:
        return 0.0, np.nan, np.nan, np.nan
    w_sum = float(w.sum())
    if w_sum <= 0:
        return w_sum, np.nan, np.nan, np.nan

    ds = DescrStatsW(x, weights=w, ddof=0)
    mean = float(ds.mean)
    if x.size < 2:
        return w_sum, mean, np.nan, np.nan
    ci_low, ci_high = ds.tconfint_mean(alpha=alpha)
    return w_sum, mean, float(ci_low), float(ci_high)
