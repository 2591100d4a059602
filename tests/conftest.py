import pytest
from bcoding import bencode

# A single file torrent's info dictionary, kept to text and integers
INFO = {
  'length': 1048576,
  'name': 'ubuntu.iso',
  'piece length': 262144,
}


def make_torrent(info=None, **root):
  '''
  Bencodes a metainfo dictionary with bcoding, an independent encoder.
  '''
  metainfo = {'announce': 'http://tracker.example.com/announce'}
  metainfo.update(root)
  metainfo['info'] = INFO if info is None else info
  return bencode(metainfo)


@pytest.fixture
def torrent_bytes():
  return make_torrent()


@pytest.fixture
def torrent_dir(tmp_path):
  '''
  Two good torrents and one malformed file.
  '''
  (tmp_path / 'one.torrent').write_bytes(make_torrent(dict(INFO, name='one')))
  (tmp_path / 'two.torrent').write_bytes(make_torrent(dict(INFO, name='two')))
  (tmp_path / 'broken.torrent').write_bytes(b'4:spam')
  return tmp_path
