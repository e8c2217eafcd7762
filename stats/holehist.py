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

# Histogram of hole lengths across one or more memory map dumps, binned by
# powers of two: bin k holds holes of [2**k, 2**(k+1)) words.

import argparse
import os
import sys

import numpy

if __name__ == "__main__" and __package__ is None:
    sys.path.append(os.path.dirname(sys.path[0]))

from common.codec import parse_memory_map

# 65535-word pools never have holes past bin 15
NBINS = 16

def hole_lengths(texts) :
    return [sz for text in texts for (_, sz) in parse_memory_map(text)]

def bin_holes(lengths) :
    edges = [2**k for k in range(NBINS + 1)]
    (counts, _) = numpy.histogram(lengths, bins=edges)
    return counts

def draw(output, counts) :
    import matplotlib.pyplot as plt

    plt.figure(figsize=(8,4),dpi=100)
    plt.bar(range(len(counts)), counts)
    plt.ylabel("Holes")
    plt.xlabel("Hole length bin (log2 words)")
    plt.tight_layout()
    if output is None:
        plt.show()
    else :
        plt.savefig(output,bbox_inches='tight')
    plt.close()

if __name__ == "__main__" :
    argp = argparse.ArgumentParser(description='Generate hole length histogram from memory map dumps')
    argp.add_argument('--output', action='store', help="Output file name")
    argp.add_argument('dumps', action='store', nargs='+', help="Memory map dump files")
    args = argp.parse_args()

    texts = []
    for fn in args.dumps :
        with open(fn, 'r') as f :
            texts.append(f.read())

    draw(args.output, bin_holes(hole_lengths(texts)))
