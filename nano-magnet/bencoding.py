import re
import logging
from collections import namedtuple

# The byte range of a value inside the buffer it was found in, [start, end)
CapturedRange = namedtuple('CapturedRange', ['start', 'end'])

INTEGER_TOKEN = b'i'
LIST_TOKEN = b'l'
DICT_TOKEN = b'd'
END_TOKEN = b'e'
STRING_SEPARATOR = b':'

# How many lists and dictionaries may be nested inside each other
MAX_DEPTH = 256

INTEGER_PATTERN = re.compile(rb'-?[0-9]+')
LENGTH_PATTERN = re.compile(rb'[0-9]+')


class DecodeError(ValueError):
  '''
  Raised when the data is not valid Bencoding.
  offset is the position in the buffer where parsing failed.
  '''

  def __init__(self, message, offset=None):
    if offset is not None:
      message = '{message} at offset {offset}'.format(message=message, offset=offset)
    super().__init__(message)
    self.offset = offset


class Decoder:
  '''
  Decodes a bencoded buffer.

  Bencoding has four types:
    * Integers:     i<digits>e, the digits may be prefixed by a '-'.
    * Byte strings: <length>:<raw bytes>, not assumed to be text.
    * Lists:        l<values>e
    * Dictionaries: d<byte string key><value>...e

  The decoder keeps a single cursor (index) into the data, so besides decoding
  values it can skip over them, which lets us record exactly where a value
  starts and ends without building it.
  '''

  def __init__(self, data: bytes):
    if not isinstance(data, (bytes, bytearray, memoryview)):
      raise TypeError('Decoder expects bytes, got {}'.format(type(data).__name__))
    self.data = bytes(data)
    self.index = 0
    self.depth = 0

  def decode_value(self):
    '''
    Decodes the value at the cursor and advances past it.

    :return: int, bytes, list or dict (keyed by bytes).
    '''
    token = self._peek()
    if token == INTEGER_TOKEN:
      return self._read_integer()
    if token == LIST_TOKEN:
      self._open()
      items = []
      while not self._at_end_token():
        items.append(self.decode_value())
      self._close()
      return items
    if token == DICT_TOKEN:
      self._open()
      items = {}
      while not self._at_end_token():
        key = self._read_key()
        items[key] = self.decode_value()
      self._close()
      return items
    if token.isdigit():
      return self._read_string()
    raise DecodeError('Unexpected token {!r}'.format(token), self.index)

  def skip_value(self):
    '''
    Advances the cursor past the value at the cursor, without building it.
    '''
    token = self._peek()
    if token == INTEGER_TOKEN:
      self._read_integer()
    elif token == LIST_TOKEN:
      self._open()
      while not self._at_end_token():
        self.skip_value()
      self._close()
    elif token == DICT_TOKEN:
      self._open()
      while not self._at_end_token():
        self._expect_key()
        self._skip_string()
        self.skip_value()
      self._close()
    elif token.isdigit():
      self._skip_string()
    else:
      raise DecodeError('Unexpected token {!r}'.format(token), self.index)

  def locate_key(self, target: bytes):
    '''
    Finds the value bound to target in the root dictionary.

    The first occurrence of the key wins, the rest of the root is not scanned.

    :param target: the key to look for, compared byte for byte.
    :return: the CapturedRange of the value, or None if the root has no such key.
    '''
    self.index = 0
    self.depth = 0
    if self._peek() != DICT_TOKEN:
      raise DecodeError('root is not a map')
    self.index += 1

    while not self._at_end_token():
      key = self._read_key()
      if key == target:
        start = self.index
        self.skip_value()
        logging.debug('Found {key} at [{start}, {end})'.format(key=key, start=start, end=self.index))
        return CapturedRange(start, self.index)
      self.skip_value()

    return None

  def _open(self):
    if self.depth >= MAX_DEPTH:
      raise DecodeError('Nesting too deep', self.index)
    self.depth += 1
    self.index += 1

  def _close(self):
    self.depth -= 1
    self.index += 1

  def _peek(self):
    if self.index >= len(self.data):
      raise DecodeError('Unexpected end of data', self.index)
    return self.data[self.index:self.index + 1]

  def _at_end_token(self):
    return self._peek() == END_TOKEN

  def _read_integer(self):
    start = self.index + 1
    end = self.data.find(END_TOKEN, start)
    if end == -1:
      raise DecodeError('Integer is missing its terminator', self.index)
    digits = self.data[start:end]
    if not INTEGER_PATTERN.fullmatch(digits):
      raise DecodeError('Invalid integer {!r}'.format(digits), start)
    self.index = end + 1
    return int(digits)

  def _read_length(self):
    '''
    Reads the <length>: prefix of a byte string and returns the
    [start, end) range of its contents.
    '''
    colon = self.data.find(STRING_SEPARATOR, self.index)
    if colon == -1:
      raise DecodeError('String length is missing its separator', self.index)
    digits = self.data[self.index:colon]
    if not LENGTH_PATTERN.fullmatch(digits):
      raise DecodeError('Invalid string length {!r}'.format(digits), self.index)

    start = colon + 1
    end = start + int(digits)
    if end > len(self.data):
      raise DecodeError('String length exceeds the remaining data', self.index)
    return start, end

  def _read_string(self):
    start, end = self._read_length()
    self.index = end
    return self.data[start:end]

  def _skip_string(self):
    self.index = self._read_length()[1]

  def _expect_key(self):
    if not self._peek().isdigit():
      raise DecodeError('Dictionary keys must be byte strings', self.index)

  def _read_key(self):
    self._expect_key()
    return self._read_string()


def decode(data: bytes):
  '''
  Decodes the first value in data and returns it.
  Byte strings stay bytes; nothing is assumed to be text.

  :param data: the bencoded data, e.g. the contents of a .torrent file.
  '''
  return Decoder(data).decode_value()


def locate_top_level_key(data: bytes, target: bytes = b'info'):
  '''
  Returns the CapturedRange of the value bound to target in the root dictionary,
  or None if the key is not there.
  Raises DecodeError if the root is not a dictionary or the data is malformed.
  '''
  return Decoder(data).locate_key(target)


def extract_name(data: bytes, captured_range: CapturedRange, key: bytes = b'name'):
  '''
  Looks for key among the top-level keys of the dictionary found at
  captured_range and returns its value as text.

  This is best effort: invalid UTF-8 is replaced, and a range that does not
  hold a dictionary, or a value that is not a byte string, gives None.

  :param data: the buffer the range was captured from.
  :param captured_range: where the dictionary is inside data.
  :param key: the key whose value we want.
  '''
  decoder = Decoder(data[captured_range.start:captured_range.end])
  try:
    value_range = decoder.locate_key(key)
  except DecodeError as e:
    logging.debug('Could not read {key} from range {range}: {error}'.format(
      key=key, range=tuple(captured_range), error=e))
    return None

  if value_range is None:
    return None

  value = decoder.data[value_range.start:value_range.end]
  if not value[:1].isdigit():
    return None
  return Decoder(value).decode_value().decode('utf-8', errors='replace')
