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
from mbptr12 import pairindex
from mbptr12 import spin as spincase
from mbptr12.errors import ProgrammingError


class KnownValues(unittest.TestCase):
    def test_lowertriang_index(self):
        n = 5
        i, j = pairindex.tril_pairs(n)
        for ij in range(len(i)):
            self.assertEqual(pairindex.lowertriang_index(i[ij], j[ij]), ij)
            self.assertEqual(pairindex.antisym_pairindex(i[ij], j[ij]), ij)
            self.assertEqual(pairindex.lowerupper_index(j[ij], i[ij]), ij)
        self.assertRaises(ProgrammingError, pairindex.lowertriang_index, 2, 2)
        self.assertRaises(ProgrammingError, pairindex.lowerupper_index, 3, 3)

    def test_pair_dim(self):
        self.assertEqual(pairindex.pair_dim(4, 4, spincase.AlphaAlpha), 6)
        self.assertEqual(pairindex.pair_dim(4, 3, spincase.AlphaBeta), 12)
        self.assertEqual(pairindex.pair_dim(4, 3, spincase.BetaBeta, False), 12)
        self.assertEqual(pairindex.pair_dim(1, 1, spincase.AlphaAlpha), 0)
        self.assertRaises(ProgrammingError, pairindex.pair_dim, 4, 3,
                          spincase.AlphaAlpha)

    def test_pair_iter(self):
        it = pairindex.SpinMOPairIter(4, 4, spincase.AlphaAlpha)
        pairs = list(it)
        self.assertEqual(len(pairs), len(it))
        self.assertEqual(pairs[0], (1, 0, 0))
        self.assertEqual(pairs[-1], (3, 2, 5))
        self.assertEqual(it.ij(2, 3), (pairindex.antisym_pairindex(3, 2), -1))
        self.assertEqual(it.ij(2, 2), (-1, 0))

        it = pairindex.SpinMOPairIter(2, 3, spincase.AlphaBeta)
        self.assertEqual([ij for i, j, ij in it], list(range(6)))
        self.assertEqual(it.ij_ab(1, 2), 5)
        self.assertEqual(it.ij_ba(1, 2), 5)

    def test_antisymmetrize(self):
        numpy.random.seed(2)
        n = 4
        a = numpy.random.random((n, n, n, n))
        A = pairindex.antisymmetrize(a.reshape(n*n, n*n), n, n, n, n)
        full = a - a.transpose(0,1,3,2)
        self.assertEqual(A.shape, (6, 6))
        i, j = pairindex.tril_pairs(n)
        self.assertTrue(numpy.allclose(A, full[i,j][:,i,j]))
        self.assertAlmostEqual(A[0,0], a[1,0,1,0] - a[1,0,0,1], 12)

    def test_antisymmetrize_blocks(self):
        numpy.random.seed(3)
        nf, n, nv = 2, 3, 2
        a = numpy.random.random((nf*n*n, nv*nv))
        A = pairindex.antisymmetrize(a, n, n, nv, nv)
        self.assertEqual(A.shape, (nf*3, 1))
        a4 = a.reshape(nf, n, n, nv, nv)
        self.assertAlmostEqual(A[4,0], a4[1,2,0,1,0] - a4[1,2,0,0,1], 12)
        self.assertEqual(pairindex.antisymmetrize(numpy.zeros((1, 4)),
                                                  1, 1, 2, 2).shape, (0, 1))

    def test_unpack_antisym(self):
        numpy.random.seed(4)
        A = numpy.random.random((3, 6))
        a = pairindex.unpack_antisym(A, 3, 4)
        self.assertEqual(a.shape, (3, 3, 4, 4))
        self.assertTrue(numpy.allclose(a, -a.transpose(1,0,2,3)))
        self.assertTrue(numpy.allclose(a, -a.transpose(0,1,3,2)))
        self.assertTrue(numpy.allclose(pairindex.pack_antisym(a), A))

    def test_to_pair_matrix(self):
        numpy.random.seed(5)
        a = numpy.random.random((2, 3, 2, 3))
        m = pairindex.to_pair_matrix(a, False)
        self.assertEqual(m.shape, (6, 6))
        self.assertAlmostEqual(m[1*3+2, 0*3+1], a[1,2,0,1], 14)
        b = pairindex.unpack_antisym(numpy.random.random((3, 3)), 3, 3)
        self.assertTrue(numpy.allclose(pairindex.to_pair_matrix(b, True),
                                       pairindex.pack_antisym(b)))

    def test_to_lower_triangle(self):
        a = numpy.arange(9.).reshape(3,3)
        b = pairindex.to_lower_triangle(a)
        self.assertTrue(numpy.allclose(b, b.T))
        self.assertEqual(b[0,2], a[2,0])


if __name__ == "__main__":
    print("Full Tests for pair indexing")
    unittest.main()
