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

from PIL import ImageDraw

# Takes an iterator producing (base, length, color) triples and paints them
# onto img, one pixel per unit, row-major: unit n lands at (n % szx, n // szx).
# Whatever does not fit in szx * szy pixels is clipped.
def renderSpans(img, it) :
    (szx, szy) = img.size
    lim = szx * szy
    imgd = ImageDraw.Draw(img)

    for (loc, sz, c) in it :
        if loc >= lim : continue
        end = min(loc + sz, lim) - 1

        (ipy, ipx) = divmod(loc, szx)
        (fpy, fpx) = divmod(end, szx)

        if ipy == fpy :
            # Fits entirely within one row
            imgd.line([(ipx,ipy), (fpx,fpy)], fill=c)
        else :
            # Draw initial, final, and middle spans
            imgd.line([(ipx,ipy), (szx-1,ipy)], fill=c)
            imgd.line([(0,fpy), (fpx,fpy)], fill=c)
            if fpy > ipy+1 :
                imgd.rectangle([(0,ipy+1),(szx-1,fpy-1)], fill=c)
