from scipy.stats import loguniform, uniform
from sklearn.linear_model import ElasticNet, LinearRegression


def build_linear_reg(seed: int = 0) -> LinearRegression:
    # Ordinary least squares has nothing to tune; ``seed`` keeps the builder signature uniform.
    return LinearRegression()


def build_elastic_net(seed: int = 0) -> ElasticNet:
    return ElasticNet(alpha=0.1, l1_ratio=0.5, max_iter=20000, random_state=seed)


# penalty ~ 10^U(-4, 1), mixture ~ U(0, 1)
ELASTIC_NET_PARAMS = {
    "alpha": loguniform(1e-4, 10.0),
    "l1_ratio": uniform(0.0, 1.0),
}
