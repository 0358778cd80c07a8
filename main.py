from rich.pretty import pprint

from pennant import *

__prog__ = "demo"

verbose = commandline.bool("verbose", "v", usage="print every step")
retries = commandline.int("retries", "r", 3, usage="attempts before giving up")
timeout = commandline.duration("timeout", "t", usage="per-attempt `limit`")
commandline.version("version", "0.1.0", "V", usage="print the version and exit")


if __name__ == '__main__':
    commandline.parse()
    pprint({flag.name: flag.value.get() for flag in commandline.registry})
    pprint(commandline.args)
