import asyncio
import logging
from collections import namedtuple

from source_loader import READ_ERRORS, SourceLoader, source_name
from torrent import ConversionError, convert

# What a batch gives back: the ConversionResults and the Failures, each in the order they finished.
BatchReport = namedtuple('BatchReport', ['results', 'failures'])


class Failure(namedtuple('Failure', ['source', 'message'])):
  '''
  A source that could not be converted, and why.
  '''
  __slots__ = ()

  def __str__(self):
    return 'Failed to parse {source}: {message}'.format(source=self.source, message=self.message)


class BatchConverter:
  '''
  Converts many .torrent files at once.

  Every source is its own task: it is loaded, then decoded and hashed in the
  default executor. The tasks share nothing, so they need no locking, and a
  source that fails only ends its own task; the rest of the batch carries on.
  '''

  def __init__(self, loader: SourceLoader = None):
    self.loader = loader if loader is not None else SourceLoader()

  async def convert_all(self, sources) -> BatchReport:
    '''
    Converts all the sources and waits for every one of them.

    :param sources: the paths or URLs to convert.
    :return: a BatchReport, results and failures in order of completion.
    '''
    tasks = [asyncio.ensure_future(self.convert_one(source)) for source in sources]
    results = []
    failures = []

    for task in asyncio.as_completed(tasks):
      outcome = await task
      if isinstance(outcome, Failure):
        failures.append(outcome)
      else:
        results.append(outcome)

    logging.info('Converted {} of {} files'.format(len(results), len(tasks)))
    return BatchReport(results, failures)

  async def convert_one(self, source: str):
    '''
    Loads and converts one source.

    :return: its ConversionResult, or a Failure if it could not be read or parsed.
    '''
    name = source_name(source)
    try:
      data = await self.loader.load(source)
      loop = asyncio.get_running_loop()
      result = await loop.run_in_executor(None, convert, data, name)
    except ConversionError as e:
      logging.warning('Failed to parse {}: {}'.format(source, e.message))
      return Failure(source, e.message)
    except READ_ERRORS as e:
      logging.warning('Failed to read {}: {}'.format(source, e))
      return Failure(source, str(e) or type(e).__name__)

    logging.info('{} -> {}'.format(source, result.digest_hex))
    return result

  async def close(self):
    await self.loader.close()
