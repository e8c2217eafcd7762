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

# A fixed-capacity, word-addressed pool with an externalized placement
# policy.  All bookkeeping is in words; the only byte-denominated quantities
# are request sizes, the backing store, and the emulated addresses handed
# back to callers.
#
# Four structures are kept in lock-step by every mutating operation:
#
#   the backing store, a bytearray of nwords * wordsz bytes;
#
#   the hole set, free spans keyed by starting word.  Holes are never
#   empty and never adjacent: freeing coalesces immediately;
#
#   the partition set, live allocations keyed by starting word;
#
#   the occupancy bitmap, one flag per word (1 is used), padded with zeros
#   to a multiple of 8 words.
#
# Holes and partitions together exactly tile [0, nwords).
#
# Placement is delegated to a "fit" function, which sees only the encoded
# hole list (see common.codec) and answers with the start of the hole to
# carve from, or -1.  Allocations always take the low end of their hole.
#
# A pool of zero words has no holes and no backing store worth the name,
# and behaves as though it had never been initialized.

# Preamble and global parameters -------------------------------------- {{{

import itertools
import logging
import numpy
from sortedcontainers import SortedDict

from common.codec import encode_bitmap, encode_holes, format_memory_map
from common.misc import Publisher, pad_bits, words_for

# Hole list fields are 16 bits wide
MAX_WORDS = 65535

# Various symbolic names for paranoia levels
PARANOIA_STATE_PER_OPER=1

# --------------------------------------------------------------------- }}}

class MemoryManager(Publisher):
# Initialization ------------------------------------------------------ {{{

  __slots__ = (
    '_allocator', # fit(nwords, holelist) -> word offset or -1
    '_baseva'   , # Emulated address of word 0
    '_bitmap'   , # numpy uint8 occupancy flags, one per word, padded
    '_holes'    , # SortedDict of free spans, start word -> length
    '_memory'   , # Backing store; None when never initialized or shut down
    '_nwords'   , # Pool size in words
    '_paranoia' , # Self-tests
    '_parts'    , # SortedDict of live allocations, start word -> length
    '_wordsz'     # Bytes per word
  )

  def __init__(self, wordsz, allocator, *, paranoia=0) :
    super().__init__()
    assert wordsz > 0, ("Bad word size", wordsz)

    self._allocator = allocator
    self._paranoia  = paranoia
    self._wordsz    = wordsz

    # Pretend to live one page up, so that no address is ever 0
    self._baseva    = 1 << 12

    self._memory    = None
    self._nwords    = 0
    self._holes     = SortedDict()
    self._parts     = SortedDict()
    self._bitmap    = numpy.zeros(0, dtype=numpy.uint8)

  def set_allocator(self, allocator) :
    self._allocator = allocator

# --------------------------------------------------------------------- }}}
# Lifecycle ----------------------------------------------------------- {{{

  def _live(self) : return self._nwords > 0

  def initialize(self, nwords) :
    self.shutdown()

    nwords = max(0, min(nwords, MAX_WORDS))
    self._nwords = nwords
    self._memory = bytearray(nwords * self._wordsz)
    if nwords > 0 :
      self._holes[0] = nwords
    self._bitmap = numpy.zeros(pad_bits(nwords), dtype=numpy.uint8)

    logging.debug("Pool of %d words of %d bytes", nwords, self._wordsz)
    self._publish('initialized', nwords)
    if self._paranoia >= PARANOIA_STATE_PER_OPER : self._state_asserts()

  # Safe to call any number of times, initialized or not
  def shutdown(self) :
    if self._memory is None : return

    self._memory = None
    self._nwords = 0
    self._holes.clear()
    self._parts.clear()
    self._bitmap = numpy.zeros(0, dtype=numpy.uint8)
    self._publish('shutdown')

# --------------------------------------------------------------------- }}}
# Address translation ------------------------------------------------- {{{

  def _off2eva(self, off) : return self._baseva + off * self._wordsz

  # None for anything that cannot name the start of a word in this pool
  def _eva2off(self, eva) :
    if eva is None or not self._live() : return None
    (off, rem) = divmod(eva - self._baseva, self._wordsz)
    if rem != 0 or not 0 <= off < self._nwords : return None
    return off

  def get_word_size(self) : return self._wordsz

  # Precondition: initialized.  There is no sentinel start address.
  def get_memory_start(self) :
    assert self._live(), "No memory start for an uninitialized pool"
    return self._baseva

  def get_memory_limit(self) :
    return len(self._memory) if self._live() else 0

# --------------------------------------------------------------------- }}}
# Allocation ---------------------------------------------------------- {{{

  def allocate(self, nby) :
    if not self._live() or nby <= 0 or nby > len(self._memory) :
      logging.info("Rejecting allocation of %d bytes", nby)
      return None

    nw = words_for(nby, self._wordsz)
    loc = self._allocator(nw, self.get_list())
    if loc == -1 :
      logging.info("No hole fits %d words", nw)
      return None

    # The fit function may only answer with a hole it was shown
    hsz = self._holes.get(loc)
    if hsz is None :
      raise ValueError("Allocator chose a non-hole offset", loc)
    if hsz < nw :
      raise ValueError("Allocator chose an undersized hole", loc, hsz, nw)

    # Carve from the low end; any residue stays a hole, and cannot
    # coalesce with anything because the old hole did not.
    del self._holes[loc]
    if hsz != nw :
      self._holes[loc + nw] = hsz - nw

    self._parts[loc] = nw
    self._bitmap[loc:loc+nw] = 1

    logging.debug("Placed %d words at %d (hole of %d)", nw, loc, hsz)
    self._publish('allocd', loc, nw)
    if self._paranoia >= PARANOIA_STATE_PER_OPER : self._state_asserts()
    return self._off2eva(loc)

# --------------------------------------------------------------------- }}}
# Free ---------------------------------------------------------------- {{{

  # Insert the free span [loc, loc+sz), absorbing the hole that ends at loc
  # and the one that begins at loc+sz, if present.  There can be at most one
  # of each, since holes are never adjacent.  Returns the resulting hole.
  def _insert_coalesced(self, loc, sz) :
    holes = self._holes

    ix = holes.bisect_left(loc)
    if ix > 0 :
      (lb, lsz) = holes.peekitem(ix - 1)
      if lb + lsz == loc :                             # coalesced left
        del holes[lb]
        (loc, sz) = (lb, lsz + sz)

    rsz = holes.pop(loc + sz, None)                    # coalesced right
    if rsz is not None :
      sz += rsz

    holes[loc] = sz
    return (loc, sz)

  # Freeing anything that is not the start of a live allocation, including
  # an already-freed one, does nothing at all.
  def free(self, eva) :
    loc = self._eva2off(eva)
    sz = None if loc is None else self._parts.pop(loc, None)
    if sz is None :
      logging.info("Ignoring free of unallocated address %r", eva)
      return

    (qb, qsz) = self._insert_coalesced(loc, sz)
    self._bitmap[loc:loc+sz] = 0

    logging.debug("Freed %d words at %d into hole [%d+%d]", sz, loc, qb, qsz)
    self._publish('freed', loc, sz)
    if self._paranoia >= PARANOIA_STATE_PER_OPER : self._state_asserts()

# --------------------------------------------------------------------- }}}
# Export -------------------------------------------------------------- {{{

  def holes(self) : return list(self._holes.items())

  def partitions(self) : return list(self._parts.items())

  def get_list(self) :
    if not self._live() : return None
    return encode_holes(self.holes())

  def get_bitmap(self) :
    if not self._live() : return None
    return encode_bitmap(self._bitmap)

  # The backing bytes of the allocation starting at eva, if any
  def view(self, eva) :
    loc = self._eva2off(eva)
    sz = None if loc is None else self._parts.get(loc)
    if sz is None : return None
    w = self._wordsz
    return memoryview(self._memory)[loc*w:(loc+sz)*w]

  def dump_memory_map(self, path) :
    if not self._live() : return -1
    try :
      with open(path, 'w') as f :
        f.write(format_memory_map(self.holes()))
    except OSError as e :
      logging.warning("Unable to dump memory map to %s: %s", path, e)
      return -1
    return 0

# --------------------------------------------------------------------- }}}
# State assertions and diagnostics ------------------------------------ {{{

  def _state_asserts(self) :
    assert len(self._bitmap) == pad_bits(self._nwords), \
      ("Bitmap size", len(self._bitmap), self._nwords)
    assert not self._bitmap[self._nwords:].any(), "Bitmap padding dirty"

    if self._memory is not None :
      assert len(self._memory) == self._nwords * self._wordsz, "Lost memory"

    # Walk holes and partitions together in address order; they had better
    # tile the pool, and no two holes may touch.
    spans = sorted(itertools.chain(
               ((b, sz, False) for (b, sz) in self._holes.items()),
               ((b, sz, True ) for (b, sz) in self._parts.items())))
    cursor = 0
    lastused = True
    for (b, sz, used) in spans :
      assert sz > 0, ("Empty span", b, used)
      assert b == cursor, ("Gap or overlap", cursor, b, sz, used)
      assert used or lastused, ("Adjacent holes", b)
      assert (self._bitmap[b:b+sz] == int(used)).all(), \
        ("Bitmap disagrees with span", b, sz, used)
      cursor += sz
      lastused = used
    assert cursor == self._nwords, ("Spans do not cover pool", cursor, self._nwords)

# --------------------------------------------------------------------- }}}
# Rendering ----------------------------------------------------------- {{{

  # One pixel per word, row-major; holes white and partitions green.
  def render(self, img) :
    from common.render import renderSpans

    renderSpans(img, itertools.chain(
      ((b, sz, (255, 255, 255)) for (b, sz) in self._holes.items()),
      ((b, sz, (0, 255, 0)) for (b, sz) in self._parts.items())))

# --------------------------------------------------------------------- }}}

# vim: set foldmethod=marker:foldmarker={{{,}}}
