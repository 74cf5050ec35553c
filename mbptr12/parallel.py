#!/usr/bin/env python
# Copyright 2014-2020 The PySCF Developers. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

'''
Message group used by the distributed loops of the R12 intermediates

Intermediates are replicated on every process.  Each process accumulates
its own share of a loop, selected round-robin by index % size == rank, and
the shares are combined by a collective sum.  Every process of the group
must call every collective, also when it owns no part of the loop.
'''

import numpy
from pyscf import lib

INT_MAX = 2147483647
BLKSIZE = INT_MAX // 32 + 1

try:
    from mpi4py import MPI as mpi
except ImportError:
    mpi = None


class SerialMessageGroup(object):
    '''A group of one process.  All collectives are no-ops.'''
    def me(self):
        return 0
    rank = me

    def n(self):
        return 1
    size = n

    def sum(self, buf, root=None):
        return buf

    def bcast(self, buf, root=0):
        return buf

    def barrier(self):
        pass


class MPIMessageGroup(object):
    '''Message group on top of an mpi4py communicator'''
    def __init__(self, comm=None):
        if mpi is None:
            raise RuntimeError('mpi4py is required for MPIMessageGroup')
        if comm is None:
            comm = mpi.COMM_WORLD
        self.comm = comm

    def me(self):
        return self.comm.Get_rank()
    rank = me

    def n(self):
        return self.comm.Get_size()
    size = n

    def sum(self, buf, root=None):
        '''Sum buf over the group in place.  With root=None every process
        receives the sum, otherwise only root does and the other processes
        keep their own contribution.'''
        if self.n() == 1:
            return buf
        sendbuf = numpy.ascontiguousarray(buf, dtype=numpy.double)
        recvbuf = numpy.zeros_like(sendbuf)
        send_seg = sendbuf.reshape(-1)
        recv_seg = recvbuf.reshape(-1)
        for p0, p1 in lib.prange(0, send_seg.size, BLKSIZE):
            if root is None:
                self.comm.Allreduce(send_seg[p0:p1], recv_seg[p0:p1], mpi.SUM)
            else:
                self.comm.Reduce(send_seg[p0:p1], recv_seg[p0:p1], mpi.SUM, root)
        if root is None or self.me() == root:
            buf[...] = recvbuf
        return buf

    def bcast(self, buf, root=0):
        if self.n() == 1:
            return buf
        self.comm.Bcast(buf, root)
        return buf

    def barrier(self):
        self.comm.Barrier()


_default_group = SerialMessageGroup()

def get_default_group():
    return _default_group

def set_default_group(group):
    global _default_group
    _default_group = group
    return group


def round_robin(n, group=None):
    '''Indices in range(n) owned by this process'''
    if group is None:
        group = _default_group
    return range(group.me(), n, group.n())


def globally_sum(array, group=None, to_all=False, average=False):
    '''Sum a replicated array (matrix or vector) over the group in place.

    With to_all=False only process 0 keeps the sum and all other processes
    are left with zeros.  Nothing is done for a group of one process.
    '''
    if group is None:
        group = _default_group
    ntasks = group.n()
    if ntasks == 1:
        return array
    if to_all:
        group.sum(array)
    else:
        group.sum(array, root=0)
    if average:
        array *= 1./ntasks
    if not to_all and group.me() != 0:
        array[...] = 0
    return array

# aliases used by the intermediates
globally_sum_scmatrix = globally_sum
globally_sum_scvector = globally_sum
