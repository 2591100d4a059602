import os
import asyncio
import logging
from urllib.parse import urlparse, unquote

import aiohttp

TORRENT_EXTENSION = '.torrent'

# Seconds we give a remote .torrent to download
FETCH_TIMEOUT = 30

URL_SCHEMES = ('http', 'https')

# What loading a source can fail with
READ_ERRORS = (OSError, aiohttp.ClientError, asyncio.TimeoutError)


def is_url(source: str) -> bool:
  return urlparse(source).scheme in URL_SCHEMES


def source_name(source: str) -> str:
  '''
  The file name of a source: the base name of a path, or the last
  segment of a URL's path.
  '''
  if is_url(source):
    return unquote(urlparse(source).path.rstrip('/').rsplit('/', 1)[-1])
  return os.path.basename(source)


def is_torrent(source: str) -> bool:
  return source_name(source).lower().endswith(TORRENT_EXTENSION)


def expand_sources(sources):
  '''
  Turns the sources given on the command line into the list of .torrent
  files to convert.

  Directories are replaced by the .torrent files they contain, anything
  else that isn't named *.torrent is skipped.

  :param sources: paths, directories and URLs.
  '''
  expanded = []
  for source in sources:
    if not is_url(source) and os.path.isdir(source):
      names = sorted(os.listdir(source))
      expanded.extend(os.path.join(source, name) for name in names
                      if name.lower().endswith(TORRENT_EXTENSION))
    elif is_torrent(source):
      expanded.append(source)
    else:
      logging.warning('Skipping {}, it is not a .torrent file'.format(source))
  return expanded


class SourceLoader:
  '''
  Reads .torrent files into memory.

  Local files are read in the event loop's default executor so a batch of
  them can be read concurrently. http(s) URLs are downloaded with a single
  aiohttp ClientSession, created on first use and shared by all downloads.
  '''

  def __init__(self, timeout: float = FETCH_TIMEOUT):
    self.timeout = timeout
    self.http_client = None

  async def load(self, source: str) -> bytes:
    '''
    Returns the contents of source.

    :param source: a path or an http(s) URL.
    :raises OSError: if the file can't be read or the server doesn't answer with 200.
    '''
    if is_url(source):
      return await self.fetch(source)

    logging.info('Reading {}'.format(source))
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, self.read_file, source)

  async def fetch(self, url: str) -> bytes:
    if self.http_client is None:
      self.http_client = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=self.timeout))

    logging.info('Downloading ' + url)
    async with self.http_client.get(url) as response:
      if not response.status == 200:
        raise ConnectionError('Unable to download {}, status code {}'.format(url, response.status))
      return await response.read()

  @staticmethod
  def read_file(path: str) -> bytes:
    with open(path, 'rb') as f:
      return f.read()

  async def close(self):
    '''
    Closes the aiohttp ClientSession, if one was opened.
    '''
    if self.http_client is not None:
      await self.http_client.close()
      self.http_client = None

  async def __aenter__(self):
    return self

  async def __aexit__(self, *exc_info):
    await self.close()
