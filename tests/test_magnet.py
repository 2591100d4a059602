import pytest

from magnet import build_magnet_uri, encode_display_name

DIGEST = 'c9e15763f722f23e98a29decdfae341b98d53056'


def test_build_magnet_uri():
  assert build_magnet_uri(DIGEST, 'test') == 'magnet:?xt=urn:btih:{}&dn=test'.format(DIGEST)


def test_xt_comes_before_dn():
  uri = build_magnet_uri(DIGEST, 'name')
  assert uri.index('xt=') < uri.index('dn=')


@pytest.mark.parametrize('name, encoded', [
  ('plain', 'plain'),
  ('with space', 'with%20space'),
  ('a&b=c?d#e', 'a%26b%3Dc%3Fd%23e'),
  ('dir/file', 'dir%2Ffile'),
  ("Ubuntu (x64)!*'~_.-", "Ubuntu%20(x64)!*'~_.-"),
  ('100%', '100%25'),
  ('中文', '%E4%B8%AD%E6%96%87'),
])
def test_encode_display_name(name, encoded):
  assert encode_display_name(name) == encoded
