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

import unittest
import numpy
from mbptr12 import parallel


class FakeGroup(object):
    '''Process me of a group of n, whose collectives add a fixed
    contribution of the other processes'''
    def __init__(self, me, n, others):
        self._me = me
        self._n = n
        self.others = others

    def me(self):
        return self._me

    def n(self):
        return self._n

    def sum(self, buf, root=None):
        if root is None or self._me == root:
            buf += self.others
        return buf


class KnownValues(unittest.TestCase):
    def test_serial_group(self):
        group = parallel.SerialMessageGroup()
        self.assertEqual(group.n(), 1)
        self.assertEqual(group.me(), 0)
        a = numpy.arange(4.)
        self.assertTrue(parallel.globally_sum(a, group) is a)
        self.assertTrue(numpy.allclose(a, numpy.arange(4.)))
        self.assertEqual(list(parallel.round_robin(3, group)), [0, 1, 2])

    def test_round_robin(self):
        rows = [list(parallel.round_robin(7, FakeGroup(me, 3, 0)))
                for me in range(3)]
        self.assertEqual(rows, [[0, 3, 6], [1, 4], [2, 5]])
        self.assertEqual(sorted(sum(rows, [])), list(range(7)))

    def test_globally_sum(self):
        a = numpy.ones((2,2))
        parallel.globally_sum(a, FakeGroup(0, 2, 2.), to_all=True)
        self.assertTrue(numpy.allclose(a, 3.))
        a = numpy.ones((2,2))
        parallel.globally_sum(a, FakeGroup(1, 2, 2.), to_all=False)
        self.assertTrue(numpy.allclose(a, 0.))
        a = numpy.ones((2,2))
        parallel.globally_sum(a, FakeGroup(0, 2, 3.), to_all=False, average=True)
        self.assertTrue(numpy.allclose(a, 2.))

    def test_default_group(self):
        group = parallel.get_default_group()
        self.assertTrue(isinstance(group, parallel.SerialMessageGroup))
        fake = FakeGroup(0, 1, 0.)
        try:
            parallel.set_default_group(fake)
            self.assertTrue(parallel.get_default_group() is fake)
        finally:
            parallel.set_default_group(group)


if __name__ == "__main__":
    print("Full Tests for message groups")
    unittest.main()
