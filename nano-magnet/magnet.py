from urllib.parse import quote

MAGNET_PREFIX = 'magnet:?'

# Characters left as they are in the dn parameter, on top of the letters, digits and '_.-~'
# that quote() never escapes. This matches what browsers do with encodeURIComponent.
DN_SAFE_CHARACTERS = "!*'()"


def encode_display_name(name: str) -> str:
  '''
  Percent-encodes a name (as UTF-8) so it can be put in a URI query component.
  '''
  return quote(name, safe=DN_SAFE_CHARACTERS)


def build_magnet_uri(digest_hex: str, display_name: str) -> str:
  '''
  Builds the magnet link of a torrent.

  The parameters are always in this order:
    * xt: the exact topic, urn:btih:<info hash as 40 hex characters>.
    * dn: the display name, percent-encoded.

  :param digest_hex: the hex SHA1 hash of the info dictionary.
  :param display_name: the human readable name, not yet encoded.
  '''
  return '{prefix}xt=urn:btih:{digest}&dn={name}'.format(
    prefix=MAGNET_PREFIX,
    digest=digest_hex,
    name=encode_display_name(display_name)
  )
