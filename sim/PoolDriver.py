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

# A trace listener that drives a MemoryManager, translating the trace's
# allocation tags to the addresses the pool hands out.
#
# Trace-level oddities are tolerated rather than fatal:
#
#   an alloc that the pool refuses leaves its tag unmapped, so the matching
#   free is dropped;
#
#   a free of a tag we have never heard of (or already freed) is dropped;
#
#   an alloc reusing a live tag first frees the old allocation.

import importlib.util
import logging

# Resolve a placement strategy by module name, either as given or under
# sim.fit, and return its fit function.
def load_fit(name) :
  for cand in (name, "sim.fit." + name) :
    try :
      spec = importlib.util.find_spec(cand)
    except ModuleNotFoundError :
      spec = None
    if spec is not None : break
  else :
    raise ValueError("Unable to find placement strategy", name)

  mod = importlib.util.module_from_spec(spec)
  spec.loader.exec_module(mod)
  return mod.fit

class PoolDriver :
  __slots__ = ('_mm', '_tag2eva')

  def __init__(self, mm) :
    self._mm = mm
    self._tag2eva = {}

  def initd(self, nwords) :
    self._tag2eva.clear()
    self._mm.initialize(nwords)

  def shutd(self) :
    self._tag2eva.clear()
    self._mm.shutdown()

  def allocd(self, tag, nby) :
    if tag in self._tag2eva :
      logging.warning("alloc of live tag %s; freeing it first", tag)
      self.freed(tag)

    eva = self._mm.allocate(nby)
    if eva is None :
      logging.info("alloc %s of %d bytes failed", tag, nby)
      return
    self._tag2eva[tag] = eva

  def freed(self, tag) :
    eva = self._tag2eva.pop(tag, None)
    if eva is None :
      logging.info("Dropping free of unmapped tag %s", tag)
      return
    self._mm.free(eva)

  def fitd(self, name) :
    self._mm.set_allocator(load_fit(name))

  def dumpd(self, path) :
    if self._mm.dump_memory_map(path) != 0 :
      logging.warning("Memory map dump to %s failed", path)

  # Address of a live tag, for inspection
  def address(self, tag) : return self._tag2eva.get(tag)
