import logging
from collections import namedtuple
from hashlib import sha1

from bencoding import DICT_TOKEN, CapturedRange, DecodeError, extract_name, locate_top_level_key
from magnet import build_magnet_uri

INFO_KEY = b'info'
NAME_KEY = b'name'

# The name used when neither the torrent nor the caller give us one
FALLBACK_NAME = 'file'

# What a converted torrent looks like to whoever displays it.
# display_name is the readable name, the magnet_uri carries its percent-encoded copy.
ConversionResult = namedtuple('ConversionResult', ['display_name', 'digest_hex', 'magnet_uri'])


class ConversionError(Exception):
  '''
  Raised when a torrent could not be converted to a magnet link.
  Carries the name of the file it happened to, if we know it.
  '''

  def __init__(self, message, filename=None):
    super().__init__(message)
    self.message = message
    self.filename = filename

  def __str__(self):
    if self.filename:
      return '{filename}: {message}'.format(filename=self.filename, message=self.message)
    return self.message


class Torrent:
  '''
  A wrapper around the raw bytes of a .torrent file.

  The info hash is the SHA1 of the info dictionary exactly as it appears in the
  file, byte for byte. It is never decoded and re-encoded, so key order and
  integer formatting stay as the file has them.
  '''

  def __init__(self, data: bytes, filename: str = None):
    self.data = bytes(data)
    self.filename = filename
    self.info_range = locate_top_level_key(self.data, INFO_KEY)
    if self.info_range is None or self.data[self.info_range.start:self.info_range.start + 1] != DICT_TOKEN:
      raise DecodeError('missing info dictionary')
    self._root_name = None
    self._root_name_read = False

  @property
  def info(self) -> bytes:
    '''
    The untouched bytes of the info dictionary.
    '''
    return self.data[self.info_range.start:self.info_range.end]

  @property
  def info_hash(self) -> bytes:
    '''
    The 20 byte SHA1 hash of the info dictionary.
    SHA1 is what the magnet link format identifies torrents with.
    '''
    return sha1(self.info).digest()

  @property
  def info_hash_hex(self) -> str:
    return sha1(self.info).hexdigest()

  @property
  def name(self):
    '''
    The name found inside the info dictionary, where it belongs.
    '''
    return extract_name(self.data, self.info_range, NAME_KEY)

  @property
  def root_name(self):
    '''
    A 'name' key at the root of the file. Conformant torrents don't have one,
    so this is only looked at when nothing better is available.
    '''
    if not self._root_name_read:
      self._root_name = extract_name(self.data, CapturedRange(0, len(self.data)), NAME_KEY)
      self._root_name_read = True
    return self._root_name

  @property
  def display_name(self) -> str:
    '''
    The first non-empty of: the info name, the root name, the file name, 'file'.
    '''
    name = self.name
    if name:
      return name
    root_name = self.root_name
    if root_name:
      logging.info('Using the root level name of {}'.format(self.filename))
      return root_name
    if self.filename:
      return self.filename
    return FALLBACK_NAME

  @property
  def magnet_uri(self) -> str:
    return build_magnet_uri(self.info_hash_hex, self.display_name)

  def result(self) -> ConversionResult:
    display_name = self.display_name
    digest_hex = self.info_hash_hex
    return ConversionResult(
      display_name=display_name,
      digest_hex=digest_hex,
      magnet_uri=build_magnet_uri(digest_hex, display_name)
    )

  def __str__(self):
    return 'Name: {0}\n\
    Info Range: [{1}, {2})\n\
    Hash: {3}'.format(self.display_name,
            self.info_range.start,
            self.info_range.end,
            self.info_hash_hex
            )


def convert(data: bytes, filename: str = None) -> ConversionResult:
  '''
  Converts the contents of a .torrent file to a magnet link.
  Has no side effects, the same input always gives the same result.

  :param data: the whole .torrent file.
  :param filename: the file's own name, used as the name of last resort.
  :raises ConversionError: if the data is not a torrent we can read.
  '''
  try:
    return Torrent(data, filename).result()
  except DecodeError as e:
    raise ConversionError(str(e), filename) from e
