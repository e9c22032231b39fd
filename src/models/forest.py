from scipy.stats import randint, uniform
from sklearn.ensemble import RandomForestRegressor


def build_random_forest(seed: int = 2024) -> RandomForestRegressor:
    # n_jobs=1: parallelism happens one level up, across CV fits.
    return RandomForestRegressor(
        n_estimators=200,
        max_features=0.5,
        min_samples_leaf=5,
        random_state=seed,
        n_jobs=1,
    )


# mtry as a fraction of predictors, min_n as the minimum leaf size
RANDOM_FOREST_PARAMS = {
    "max_features": uniform(0.1, 0.8),
    "min_samples_leaf": randint(2, 41),
}
