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

import sys

# Parser and driver for pool command traces.
#
# A trace is a sequence of tab-separated records, one per line; blank lines
# and lines beginning with '#' are skipped:
#
#   init      words
#   alloc     tag     bytes
#   free      tag
#   fit       strategy
#   dump      path
#   shutdown
#
# Each record becomes a call on every registered listener, by method name;
# listeners lacking a method simply do not hear about that kind of record.

def _discard(*args, **kwargs): pass

# call -> (listener method, argument converters)
_calls = {
  'init'     : ('initd',  (int, )),
  'alloc'    : ('allocd', (str, int)),
  'free'     : ('freed',  (str, )),
  'fit'      : ('fitd',   (str, )),
  'dump'     : ('dumpd',  (str, )),
  'shutdown' : ('shutd',  ()),
}

class Run:
    def __init__(self, file, *, trace_listeners=[]):
        self._file = file
        self._trace_listeners = list(trace_listeners)

        self.lineno = 0
        self.alloc_api_calls = 0

    def register_trace_listener(self, *l):
        self._trace_listeners.extend(x for x in l if x not in self._trace_listeners)

    def _replay_line(self, line):
        fields = line.split('\t')
        call, arg = fields[0], fields[1:]

        ent = _calls.get(call, None)
        if ent is None:
            raise ValueError('unknown call "{0}" at line {1}'.format(call, self.lineno))
        meth, convs = ent
        if len(arg) != len(convs):
            raise ValueError('{0} takes {1} arguments, not {2}, at line {3}'
                             .format(call, len(convs), len(arg), self.lineno))
        args = tuple(conv(a) for conv, a in zip(convs, arg))

        if call == 'alloc' or call == 'free':
            self.alloc_api_calls += 1

        for tl in self._trace_listeners:
            getattr(tl, meth, _discard)(*args)

    def replay(self):
        for line in self._file:
            self.lineno += 1
            line = line.rstrip('\r\n')
            if line.strip() == '' or line.startswith('#'):
                continue
            self._replay_line(line)


# Placement trace producer.  Subscribe one of these to a MemoryManager to
# get a record of where everything landed, in words, stamped with whatever
# seqlam returns (typically the trace line being replayed).

class Unrun:
    def __init__(self, seqlam, out=sys.stdout):
        self._seqlam = seqlam
        self._out = out

    def initialized(self, publ, nwords):
        print("%d\tinitialized\t%d" % (self._seqlam(), nwords), file=self._out)

    def allocd(self, publ, loc, sz):
        print("%d\tallocd\t%d\t%d" % (self._seqlam(), loc, sz), file=self._out)

    def freed(self, publ, loc, sz):
        print("%d\tfreed\t%d\t%d" % (self._seqlam(), loc, sz), file=self._out)

    def shutdown(self, publ):
        print("%d\tshutdown" % (self._seqlam(), ), file=self._out)
