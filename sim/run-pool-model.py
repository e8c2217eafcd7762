#!/usr/bin/env python3
# Copyright (c) 2018  Nathaniel Wesley Filardo
# Copyright (c) 2018  Lucian Paul-Trifu
# All rights reserved.
#
# This software was developed by SRI International and the University of
# Cambridge Computer Laboratory under DARPA/AFRL contract (FA8750-10-C-0237)
# ("CTSRD"), as part of the DARPA CRASH research programme.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR AND CONTRIBUTORS ``AS IS'' AND
# ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY
# OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF
# SUCH DAMAGE.

import argparse
import ast
import logging
import sys

if __name__ == "__main__" and __package__ is None:
    import os
    sys.path.append(os.path.dirname(sys.path[0]))

from common.run import Run, Unrun
from sim.MemoryManager import MemoryManager
from sim.PoolDriver import PoolDriver, load_fit

# Parse command line arguments
argp = argparse.ArgumentParser(description='Replay a pool command trace')
argp.add_argument('allocator', action='store',
                  help="Placement strategy (e.g. BestFit, WorstFit, FirstFit)")
argp.add_argument('--word-size', action='store', type=int, default=8,
                  help="Bytes per word")
argp.add_argument('--paranoia', action='store', type=int, default=0,
                  help="Check pool invariants after every operation if nonzero")
argp.add_argument("--log-level", help="Set the logging level",
                  choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                  default="WARNING")

# Placements and log messages are easiest to follow on one stream
argp.add_argument('--stdouterr', help='Equate sys.stdout and sys.stderr',
                  action='store_const', const=True, default=False)

argp.add_argument('--placements', action='store_const', const=True, default=False,
                  help="Write the resulting placement trace to stdout")
argp.add_argument('--dump', action='store', type=str, default=None,
                  help="Write the final memory map to this file")

argp.add_argument('--render-freq', action='store', type=int, default=None)
argp.add_argument('--render-dir', action='store', type=str, default="./tmp")
argp.add_argument('--render-geom', action='store', type=ast.literal_eval, default=(256,256))
args = argp.parse_args()

if args.stdouterr :
  sys.stderr.close()
  sys.stderr = sys.stdout

# Set up logging
logging.basicConfig(level=logging.getLevelName(args.log_level))

try :
  fit = load_fit(args.allocator)
except ValueError :
  print("Unable to find allocator %s" % args.allocator, file=sys.stderr)
  sys.exit(1)

if args.word_size <= 0 :
  print("Word size must be positive", file=sys.stderr)
  sys.exit(1)

mm = MemoryManager(args.word_size, fit, paranoia=args.paranoia)

run = Run(sys.stdin)
run.register_trace_listener(PoolDriver(mm))

if args.placements :
  mm.register_subscriber(Unrun(lambda : run.lineno, out=sys.stdout))

if args.render_freq is not None :
  from PIL import Image

  class RenderListener:
    __slots__ = ('count')
    def __init__(self) :
      self.count = 0
    def _common(self) :
      if self.count % args.render_freq == 0 :
        img = Image.new('RGB', args.render_geom)
        mm.render(img)
        img.save("%s/%06d.png" % (args.render_dir, run.lineno))
      self.count += 1
    def allocd(self, *a) : self._common()
    def freed(self, *a) : self._common()

  mm.register_subscriber(RenderListener())

run.replay()

if args.dump is not None and mm.dump_memory_map(args.dump) != 0 :
  print("Unable to dump memory map to %s" % args.dump, file=sys.stderr)
  sys.exit(1)
