import asyncio

from batch_converter import BatchConverter, BatchReport, Failure
from conftest import INFO, make_torrent
from torrent import ConversionResult


class DelayedLoader:
  '''
  Serves in-memory files, each after its own delay.
  '''

  def __init__(self, files):
    self.files = files
    self.closed = False

  async def load(self, source):
    data, delay = self.files[source]
    await asyncio.sleep(delay)
    if data is None:
      raise FileNotFoundError('No such file: {}'.format(source))
    return data

  async def close(self):
    self.closed = True


def convert_all(converter, sources):
  return asyncio.run(converter.convert_all(sources))


def test_batch_with_one_malformed_file(torrent_dir):
  sources = [str(torrent_dir / name) for name in ('one.torrent', 'broken.torrent', 'two.torrent')]
  report = convert_all(BatchConverter(), sources)

  assert isinstance(report, BatchReport)
  assert sorted(result.display_name for result in report.results) == ['one', 'two']
  assert all(isinstance(result, ConversionResult) for result in report.results)
  assert report.failures == [Failure(sources[1], 'root is not a map')]


def test_failure_str():
  failure = Failure('broken.torrent', 'root is not a map')
  assert str(failure) == 'Failed to parse broken.torrent: root is not a map'


def test_results_follow_completion_order():
  loader = DelayedLoader({
    'slow.torrent': (make_torrent(dict(INFO, name='slow')), 0.2),
    'fast.torrent': (make_torrent(dict(INFO, name='fast')), 0),
  })
  report = convert_all(BatchConverter(loader), ['slow.torrent', 'fast.torrent'])
  assert [result.display_name for result in report.results] == ['fast', 'slow']


def test_unreadable_file_does_not_stop_the_batch():
  loader = DelayedLoader({
    'missing.torrent': (None, 0),
    'good.torrent': (make_torrent(), 0.05),
  })
  report = convert_all(BatchConverter(loader), ['missing.torrent', 'good.torrent'])
  assert [result.display_name for result in report.results] == ['ubuntu.iso']
  assert report.failures == [Failure('missing.torrent', 'No such file: missing.torrent')]


def test_missing_local_file(tmp_path):
  source = str(tmp_path / 'nowhere.torrent')
  report = convert_all(BatchConverter(), [source])
  assert report.results == []
  assert len(report.failures) == 1
  assert report.failures[0].source == source


def test_filename_is_the_fallback_name():
  loader = DelayedLoader({'dir/nameless.torrent': (make_torrent({'length': 1}), 0)})
  report = convert_all(BatchConverter(loader), ['dir/nameless.torrent'])
  assert report.results[0].display_name == 'nameless.torrent'


def test_empty_batch():
  assert convert_all(BatchConverter(), []) == BatchReport([], [])


def test_close_closes_the_loader():
  loader = DelayedLoader({})
  asyncio.run(BatchConverter(loader).close())
  assert loader.closed


def test_deeply_nested_file_does_not_stop_the_batch():
  deep = b'd4:infod4:name4:deep5:depth' + b'l' * 5000 + b'e' * 5000 + b'ee'
  loader = DelayedLoader({
    'good.torrent': (make_torrent(), 0),
    'deep.torrent': (deep, 0),
  })
  report = convert_all(BatchConverter(loader), ['good.torrent', 'deep.torrent'])
  assert [result.display_name for result in report.results] == ['ubuntu.iso']
  assert len(report.failures) == 1
  assert report.failures[0].source == 'deep.torrent'
  assert report.failures[0].message.startswith('Nesting too deep')
