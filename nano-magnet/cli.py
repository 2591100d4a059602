import sys
import json
import logging
import asyncio
import argparse

from bencoding import DecodeError, decode
from batch_converter import BatchConverter
from source_loader import READ_ERRORS, SourceLoader, expand_sources

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_NO_SOURCES = 2


def parse_args(argv=None):
  parser = argparse.ArgumentParser(
    prog='nano-magnet',
    description='Converts .torrent files to magnet links.'
  )
  parser.add_argument('sources', nargs='+', metavar='SOURCE',
                      help='a .torrent file, a directory of them, or an http(s) URL')
  parser.add_argument('-l', '--log', action='store_true', help='Show logs')
  output = parser.add_mutually_exclusive_group()
  output.add_argument('--links-only', action='store_true', help='print only the magnet links, one per line')
  output.add_argument('--json', action='store_true', help='print the results and errors as JSON')
  output.add_argument('--dump', action='store_true', help='print the decoded contents of each file instead')
  return parser.parse_args(argv)


def printable(value):
  '''
  Makes a decoded value printable: byte strings become text when they are
  UTF-8 and hex otherwise (piece hashes are raw binary).
  '''
  if isinstance(value, dict):
    return {printable(k): printable(v) for k, v in value.items()}
  if isinstance(value, list):
    return [printable(item) for item in value]
  if isinstance(value, bytes):
    try:
      return value.decode('utf-8')
    except UnicodeDecodeError:
      return value.hex()
  return value


async def dump(sources, out=None, err=None):
  err = err or sys.stderr
  failed = False
  async with SourceLoader() as loader:
    for source in sources:
      try:
        contents = decode(await loader.load(source))
      except (DecodeError,) + READ_ERRORS as e:
        print('Failed to parse {}: {}'.format(source, str(e) or type(e).__name__), file=err)
        failed = True
        continue
      print(source, file=out)
      print(json.dumps(printable(contents), indent=2, ensure_ascii=False), file=out)
  return EXIT_FAILURES if failed else EXIT_OK


async def run(sources, links_only=False, as_json=False, out=None, err=None):
  '''
  Converts the sources and prints the outcome.

  :return: the exit status.
  '''
  err = err or sys.stderr
  converter = BatchConverter()
  try:
    report = await converter.convert_all(sources)
  finally:
    await converter.close()

  if as_json:
    print(json.dumps({
      'results': [result._asdict() for result in report.results],
      'errors': [failure._asdict() for failure in report.failures],
    }, indent=2, ensure_ascii=False), file=out)
  else:
    for result in report.results:
      if links_only:
        print(result.magnet_uri, file=out)
      else:
        print('{name}\n  Hash: {digest}\n  Magnet Link: {uri}'.format(
          name=result.display_name, digest=result.digest_hex, uri=result.magnet_uri), file=out)
    for failure in report.failures:
      print(failure, file=err)

  return EXIT_FAILURES if report.failures else EXIT_OK


def main(argv=None):
  args = parse_args(argv)
  if args.log:
    logging.basicConfig(level=logging.INFO)

  sources = expand_sources(args.sources)
  if not sources:
    print('Please supply valid .torrent files.', file=sys.stderr)
    return EXIT_NO_SOURCES

  try:
    if args.dump:
      return asyncio.run(dump(sources))
    return asyncio.run(run(sources, links_only=args.links_only, as_json=args.json))
  except KeyboardInterrupt:
    logging.info('Exiting')
    return EXIT_FAILURES


if __name__ == '__main__':
  sys.exit(main())
