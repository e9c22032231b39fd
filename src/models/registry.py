from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from sklearn.base import clone
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline

from src.models.baseline import ELASTIC_NET_PARAMS, build_elastic_net, build_linear_reg
from src.models.boosted import BOOSTED_TREES_PARAMS, build_hist_gradient_boosting
from src.models.forest import RANDOM_FOREST_PARAMS, build_random_forest


@dataclass(frozen=True)
class ModelSpec:
    """A model type, how to build it and where to search its hyperparameters.

    ``simplest_first`` orders candidates from least to most complex as
    ``(param, ascending)`` pairs; it drives one-standard-error selection.
    """

    name: str
    build: Callable[[int], Any]
    param_distributions: Dict[str, Any] = field(default_factory=dict)
    simplest_first: Tuple[Tuple[str, bool], ...] = ()

    @property
    def tunable(self) -> bool:
        return bool(self.param_distributions)


MODEL_SPECS: Dict[str, ModelSpec] = {
    "linear_reg": ModelSpec(name="linear_reg", build=build_linear_reg),
    "elastic_net": ModelSpec(
        name="elastic_net",
        build=build_elastic_net,
        param_distributions=ELASTIC_NET_PARAMS,
        simplest_first=(("alpha", False),),
    ),
    "random_forest": ModelSpec(
        name="random_forest",
        build=build_random_forest,
        param_distributions=RANDOM_FOREST_PARAMS,
        simplest_first=(("min_samples_leaf", False), ("max_features", True)),
    ),
    "boosted_trees": ModelSpec(
        name="boosted_trees",
        build=build_hist_gradient_boosting,
        param_distributions=BOOSTED_TREES_PARAMS,
        simplest_first=(("max_depth", True), ("max_iter", True)),
    ),
}


def get_model_spec(name: str) -> ModelSpec:
    try:
        return MODEL_SPECS[name]
    except KeyError:
        raise ValueError(f"Unknown model: {name}; expected one of {sorted(MODEL_SPECS)}") from None


def build_workflow(spec: ModelSpec, recipe: ColumnTransformer, seed: int) -> Pipeline:
    return Pipeline(steps=[("recipe", clone(recipe)), ("model", spec.build(seed))])
