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

# Wire formats shared between the pool, its placement strategies, and
# anything that wants to inspect a pool from outside.
#
#   hole list:  u16 count, then count pairs of u16 (start, length), all
#               little-endian, ascending by start.  Units are words.
#
#   bitmap:     u16 byte count, then that many bytes.  Bit j of byte k
#               (least significant first) is the occupancy of word 8k+j.
#
#   memory map: "[start, length] - [start, length] - ...", the textual
#               rendering of the hole list; "[0, 0]" stands for no holes.

import re

import numpy

_u16le = numpy.dtype('<u2')

# Hole list ----------------------------------------------------------- {{{

def encode_holes(holes) :
    flat = [len(holes)]
    for (start, sz) in holes :
        flat += [start, sz]
    return numpy.array(flat, dtype=_u16le).tobytes()

def decode_holes(buf) :
    a = numpy.frombuffer(buf, dtype=_u16le)
    n = int(a[0])
    assert len(a) >= 2*n + 1, ("Truncated hole list", n, len(a))
    return [(int(a[1+2*i]), int(a[2+2*i])) for i in range(n)]

# --------------------------------------------------------------------- }}}
# Bitmap -------------------------------------------------------------- {{{

# Takes one flag per word, already padded to a multiple of 8.
def encode_bitmap(flags) :
    packed = numpy.packbits(flags, bitorder='little')
    return numpy.array([len(packed)], dtype=_u16le).tobytes() + packed.tobytes()

# Returns one uint8 flag per word, padding included.
def decode_bitmap(buf) :
    nby = int(numpy.frombuffer(buf[:2], dtype=_u16le)[0])
    body = numpy.frombuffer(buf[2:2+nby], dtype=numpy.uint8)
    assert len(body) == nby, ("Truncated bitmap", nby, len(body))
    return numpy.unpackbits(body, bitorder='little')

# --------------------------------------------------------------------- }}}
# Memory map text ----------------------------------------------------- {{{

_mmre = re.compile(r'\[(\d+), (\d+)\]')

def format_memory_map(holes) :
    if not holes :
        return "[0, 0]"
    return " - ".join("[%d, %d]" % (start, sz) for (start, sz) in holes)

# The "[0, 0]" placeholder parses as no holes at all.
def parse_memory_map(text) :
    holes = [(int(b), int(s)) for (b, s) in _mmre.findall(text)]
    return [h for h in holes if h[1] != 0]

# --------------------------------------------------------------------- }}}

# vim: set foldmethod=marker:foldmarker={{{,}}}
