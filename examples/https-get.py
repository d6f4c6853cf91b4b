#!/usr/bin/env python3

from logging import basicConfig
from logging import DEBUG
from pprint import pprint
from sys import argv
from sys import exit
from sys import stdout
from tlsoneshot import get
from tlsoneshot import OneshotError


def fetch(url):
    try:
        with get(url) as response:
            print(f'Status: {int(response.status())}')
            print('Headers:')
            pprint(response.headers)
            print('Body:')
            stdout.flush()
            stdout.buffer.write(response.read())
            stdout.buffer.flush()

            return 0 if response.status().is_success() else 1
    except OneshotError as oneshot_error:
        print(oneshot_error)

        return 2


if __name__ == '__main__':
    if len(argv) < 2:
        print(f'Usage: {argv[0]} URL [-v]')
        exit(2)

    if '-v' in argv[2:]:
        basicConfig(level=DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    exit(fetch(argv[1]))
