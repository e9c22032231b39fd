from scipy.stats import loguniform, randint
from sklearn.ensemble import HistGradientBoostingRegressor


def build_hist_gradient_boosting(seed: int = 2024) -> HistGradientBoostingRegressor:
    return HistGradientBoostingRegressor(
        max_depth=4,
        learning_rate=0.05,
        max_iter=200,
        min_samples_leaf=20,
        l2_regularization=0.0,
        early_stopping=False,
        random_state=seed,
    )


BOOSTED_TREES_PARAMS = {
    "learning_rate": loguniform(0.01, 0.3),
    "max_depth": randint(2, 8),
    "min_samples_leaf": randint(5, 41),
    "max_iter": randint(50, 401),
}
