import dataclasses
import logging

import ocinorm.model as om

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = 'localhost'
DEFAULT_TAG = 'latest'

DOCKERHUB_REGISTRY = 'docker.io'
DOCKERHUB_LEGACY_REGISTRIES = ('index.docker.io',)
DOCKERHUB_OFFICIAL_NAMESPACE = 'library'


def is_qualified_host(segment: str) -> bool:
    '''
    heuristically checks whether the given (first) segment of an image reference names a
    registry host (as opposed to being the first path component of a repository)
    '''
    return '.' in segment or ':' in segment or segment == 'localhost'


def qualify(
    reference: om.ParsedReference,
    default_registry: str=DEFAULT_REGISTRY,
) -> om.ImageReference:
    '''
    returns a host-qualified equivalent of the given reference.

    references whose first segment is (heuristically) a hostname are kept. Otherwise,
    `default_registry` is prepended. Explicit references to docker.io w/ only a single path
    segment are expanded to the "official" `library` namespace (this is not done if docker.io
    is the default registry).

    tag and digest are passed through unchanged.
    '''
    # a domain recognised by the grammar is just the first segment, as far as qualification
    # is concerned
    if reference.registry:
        segments = (reference.registry, *reference.repository)
    else:
        segments = reference.repository

    if len(segments) > 1 and is_qualified_host(first_segment := segments[0]):
        registry = first_segment
        repository = segments[1:]

        if registry in DOCKERHUB_LEGACY_REGISTRIES:
            registry = DOCKERHUB_REGISTRY

        if registry == DOCKERHUB_REGISTRY and len(repository) == 1:
            logger.debug(f'inserting {DOCKERHUB_OFFICIAL_NAMESPACE=} for {reference.name=}')
            repository = (DOCKERHUB_OFFICIAL_NAMESPACE, *repository)
    else:
        logger.debug(f'prepending {default_registry=} to {reference.name=}')
        registry = default_registry
        repository = segments

    for segment in repository:
        if segment != segment.lower():
            raise om.MalformedReference(
                f'repository name must be lowercase: {"/".join(repository)=}'
            )

    return dataclasses.replace(
        reference,
        registry=registry,
        repository=repository,
    )


def reconcile(
    reference: om.ImageReference,
    default_tag: str | None=DEFAULT_TAG,
) -> om.ImageReference:
    '''
    applies precedence rules for tags and digests:

    - if a digest is present, tags are dropped (the digest unambiguously identifies the image)
    - if neither tag nor digest is present, `default_tag` is set (unless it is `None`)
    - otherwise, the reference is returned unchanged
    '''
    if reference.digest:
        if not reference.tag:
            return reference

        logger.debug(f'dropping {reference.tag=} from digested {reference.name=}')
        return dataclasses.replace(reference, tag=None)

    if not reference.tag and default_tag:
        return dataclasses.replace(reference, tag=default_tag)

    return reference
