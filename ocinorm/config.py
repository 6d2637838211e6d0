'''
configuration of normalisation defaults

the normalisation functions never read configuration themselves (they receive it as argument).
`load_cfg` is intended to be called by outermost callers (such as the cli).
'''

import collections.abc
import dataclasses
import logging
import os

import dacite
import yaml

import ocinorm.grammar
import ocinorm.reference

logger = logging.getLogger(__name__)


ENV_CFG_PATH = 'OCINORM_CFG'
ENV_DEFAULT_REGISTRY = 'OCINORM_DEFAULT_REGISTRY'
ENV_DEFAULT_TAG = 'OCINORM_DEFAULT_TAG'


@dataclasses.dataclass(frozen=True)
class NormalisationCfg:
    default_registry: str = ocinorm.reference.DEFAULT_REGISTRY
    default_tag: str = ocinorm.reference.DEFAULT_TAG

    def __post_init__(self):
        # unqualified default-registries would be re-interpreted as path segments upon
        # re-normalisation
        if not ocinorm.reference.is_qualified_host(self.default_registry):
            raise ValueError(
                f'default registry must contain a dot or port, or be localhost: '
                f'{self.default_registry=}'
            )

        # names on docker.io are expanded to the `library` namespace only if docker.io is
        # explicitly referenced, which would happen upon re-normalisation
        dockerhub_registries = (
            ocinorm.reference.DOCKERHUB_REGISTRY,
            *ocinorm.reference.DOCKERHUB_LEGACY_REGISTRIES,
        )
        if self.default_registry.lower() in dockerhub_registries:
            raise ValueError(
                f'docker.io must not be used as default registry: {self.default_registry=}'
            )

        if not self.default_tag:
            raise ValueError('default tag must not be empty')

        if not ocinorm.grammar.is_valid_tag(self.default_tag):
            raise ValueError(f'default tag is not a valid tag: {self.default_tag=}')


def from_dict(raw: dict) -> NormalisationCfg:
    return dacite.from_dict(
        data_class=NormalisationCfg,
        data=raw,
        config=dacite.Config(strict=True),
    )


def from_file(path: str) -> NormalisationCfg:
    return from_dict(_read_cfg_file(path))


def _read_cfg_file(path: str) -> dict:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f'expected a mapping in configuration file: {path=}')

    return raw


def _cfg_from_env(env: collections.abc.Mapping[str, str]) -> dict:
    raw = {}

    if default_registry := env.get(ENV_DEFAULT_REGISTRY):
        raw['default_registry'] = default_registry
    if default_tag := env.get(ENV_DEFAULT_TAG):
        raw['default_tag'] = default_tag

    return raw


def load_cfg(
    path: str | None=None,
    env: collections.abc.Mapping[str, str]=os.environ,
) -> NormalisationCfg:
    '''
    loads configuration, using (in order of increasing precedence):

    - built-in defaults
    - configuration file (from `path`, falling back to `$OCINORM_CFG`)
    - environment variables (`$OCINORM_DEFAULT_REGISTRY`, `$OCINORM_DEFAULT_TAG`)
    '''
    raw = {}

    if not path:
        path = env.get(ENV_CFG_PATH)

    if path:
        logger.debug(f'reading configuration from {path=}')
        raw |= _read_cfg_file(path)

    raw |= _cfg_from_env(env)

    return from_dict(raw)
