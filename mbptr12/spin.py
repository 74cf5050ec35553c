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
Spin cases of one and two electrons

Per-spin storage is a list indexed by SpinCase1 or SpinCase2.  When the
reference is not spin-polarized the Beta (BetaBeta) slot holds the very same
object as the Alpha (AlphaAlpha) slot, so writing through one of them writes
through the other.
'''

import enum


class SpinCase1(enum.IntEnum):
    Alpha = 0
    Beta = 1


class SpinCase2(enum.IntEnum):
    # storage order follows the number of unique cases: AB is always computed,
    # AA is the second one, BB is only distinct for spin-polarized references
    AlphaBeta = 0
    AlphaAlpha = 1
    BetaBeta = 2


Alpha = SpinCase1.Alpha
Beta = SpinCase1.Beta
AlphaBeta = SpinCase2.AlphaBeta
AlphaAlpha = SpinCase2.AlphaAlpha
BetaBeta = SpinCase2.BetaBeta

NSPINCASES1 = 2
NSPINCASES2 = 3


def nspincases1(spin_polarized):
    return 2 if spin_polarized else 1

def nspincases2(spin_polarized):
    return 3 if spin_polarized else 2


def case1(S):
    '''Spin of the first electron of the pair'''
    return Beta if S == BetaBeta else Alpha

def case2(S):
    '''Spin of the second electron of the pair'''
    return Alpha if S == AlphaAlpha else Beta

def case12(s1, s2):
    if s1 != s2:
        if s1 == Beta:
            raise ValueError('BetaAlpha is not a valid SpinCase2')
        return AlphaBeta
    return AlphaAlpha if s1 == Alpha else BetaBeta

def other(s):
    return Beta if s == Alpha else Alpha


def to_string(S):
    if isinstance(S, SpinCase1):
        return S.name
    return {AlphaBeta: 'Alpha-beta', AlphaAlpha: 'Alpha-alpha',
            BetaBeta: 'Beta-beta'}[SpinCase2(S)]

def short_label(S):
    '''ab, aa or bb, used as suffix of transform labels'''
    return ('ab', 'aa', 'bb')[SpinCase2(S)]


def prepend_spincase(spin, name, lowercase=False):
    '''Prefix a descriptive name with the spin, e.g. "Alpha occupied MOs"'''
    prefix = SpinCase1(spin).name
    if lowercase:
        prefix = prefix.lower()
    return prefix + ' ' + name


def unique_spincases1(spin_polarized):
    return [Alpha, Beta][:nspincases1(spin_polarized)]

def unique_spincases2(spin_polarized):
    return [AlphaBeta, AlphaAlpha, BetaBeta][:nspincases2(spin_polarized)]


def alias_beta(per_spin, spin_polarized):
    '''Point the Beta slot of a per-SpinCase1 list to the Alpha object'''
    if not spin_polarized:
        per_spin[Beta] = per_spin[Alpha]
    return per_spin

def alias_betabeta(per_spin, spin_polarized):
    '''Point the BetaBeta slot of a per-SpinCase2 list to the AlphaAlpha object'''
    if not spin_polarized:
        per_spin[BetaBeta] = per_spin[AlphaAlpha]
    return per_spin
