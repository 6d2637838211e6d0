import hashlib

import pytest

import ocinorm.model as om
import ocinorm.reference as oref

example_digest = om.Digest(
    algorithm='sha256',
    hexdigest=hashlib.sha256('cafebabe'.encode('utf-8')).hexdigest(),
)


def ref(*repository, registry=None, tag=None, digest=None):
    return om.ImageReference(
        registry=registry,
        repository=repository,
        tag=tag,
        digest=digest,
    )


def test_is_qualified_host():
    assert oref.is_qualified_host('example.org')
    assert oref.is_qualified_host('localhost')
    assert oref.is_qualified_host('localhost:5000')
    assert oref.is_qualified_host('registry:5000')
    assert oref.is_qualified_host('[::1]')

    assert not oref.is_qualified_host('library')
    assert not oref.is_qualified_host('LOCALHOST')
    assert not oref.is_qualified_host('localhostx')


def test_qualify_keeps_qualified_references():
    qualified = oref.qualify(ref('busybox', registry='example.org'))
    assert qualified == ref('busybox', registry='example.org')

    qualified = oref.qualify(ref('ns', 'busybox', registry='localhost:5000', tag='1'))
    assert qualified == ref('ns', 'busybox', registry='localhost:5000', tag='1')

    qualified = oref.qualify(ref('busybox', registry='localhost'))
    assert qualified == ref('busybox', registry='localhost')


def test_qualify_treats_first_path_segment_as_registry():
    # the grammar might as well not have recognised the registry
    qualified = oref.qualify(ref('example.org', 'busybox'))
    assert qualified == ref('busybox', registry='example.org')

    qualified = oref.qualify(ref('localhost', 'ns', 'busybox'))
    assert qualified == ref('ns', 'busybox', registry='localhost')


def test_qualify_prepends_default_registry():
    qualified = oref.qualify(ref('busybox', tag='latest'))
    assert qualified == ref('busybox', registry='localhost', tag='latest')

    # unqualified "registries" are path segments
    qualified = oref.qualify(ref('busybox', registry='ns'))
    assert qualified == ref('ns', 'busybox', registry='localhost')

    qualified = oref.qualify(ref('ns', 'busybox'))
    assert qualified == ref('ns', 'busybox', registry='localhost')

    # single segment is never a registry
    qualified = oref.qualify(ref('localhost'))
    assert qualified == ref('localhost', registry='localhost')


def test_qualify_custom_default_registry():
    qualified = oref.qualify(ref('busybox'), default_registry='registry.example.org')
    assert qualified == ref('busybox', registry='registry.example.org')


def test_qualify_dockerhub():
    qualified = oref.qualify(ref('busybox', registry='docker.io', tag='latest'))
    assert qualified == ref('library', 'busybox', registry='docker.io', tag='latest')

    # explicit namespace is kept
    qualified = oref.qualify(ref('ns', 'busybox', registry='docker.io'))
    assert qualified == ref('ns', 'busybox', registry='docker.io')

    qualified = oref.qualify(ref('library', 'busybox', registry='docker.io'))
    assert qualified == ref('library', 'busybox', registry='docker.io')

    # legacy hostname
    qualified = oref.qualify(ref('busybox', registry='index.docker.io'))
    assert qualified == ref('library', 'busybox', registry='docker.io')


def test_qualify_does_not_insert_library_for_default_registry():
    qualified = oref.qualify(ref('busybox'), default_registry='docker.io')
    assert qualified == ref('busybox', registry='docker.io')


def test_qualify_rejects_uppercase_repositories():
    with pytest.raises(om.MalformedReference):
        oref.qualify(ref('busybox', registry='Example'))

    # uppercase hostnames are fine, though
    qualified = oref.qualify(ref('busybox', registry='Example.org'))
    assert qualified.registry == 'Example.org'


def test_reconcile():
    # digest wins over tag
    reconciled = oref.reconcile(ref('busybox', tag='1.0', digest=example_digest))
    assert reconciled == ref('busybox', digest=example_digest)

    reconciled = oref.reconcile(ref('busybox', digest=example_digest))
    assert reconciled == ref('busybox', digest=example_digest)

    # default tag
    reconciled = oref.reconcile(ref('busybox'))
    assert reconciled == ref('busybox', tag='latest')

    reconciled = oref.reconcile(ref('busybox'), default_tag='stable')
    assert reconciled == ref('busybox', tag='stable')

    reconciled = oref.reconcile(ref('busybox'), default_tag=None)
    assert reconciled == ref('busybox')

    # symbolic tags are kept
    reconciled = oref.reconcile(ref('busybox', tag='1.0'))
    assert reconciled == ref('busybox', tag='1.0')


def test_reconcile_never_yields_mixed_tags():
    for reference in (
        ref('busybox'),
        ref('busybox', tag='1.0'),
        ref('busybox', digest=example_digest),
        ref('busybox', tag='1.0', digest=example_digest),
    ):
        assert oref.reconcile(reference).tag_type is not om.TagType.MIXED
        assert oref.reconcile(reference).tag_type is not om.TagType.NO_TAG
