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
Exceptions raised by the explicitly correlated modules
'''


class ProgrammingError(RuntimeError):
    '''An internal invariant was violated (dimension mismatch, unknown
    enumeration value, unsupported combination of ansatz and basis sets).
    '''
    def __init__(self, msg, where=None):
        if where is not None:
            msg = '%s: %s' % (where, msg)
        RuntimeError.__init__(self, msg)


class FeatureNotImplemented(NotImplementedError):
    '''The requested combination is recognized but not supported.'''
    def __init__(self, msg, where=None):
        if where is not None:
            msg = '%s: %s' % (where, msg)
        NotImplementedError.__init__(self, msg)


class TransformNotFound(KeyError):
    '''An integral transform was requested that was never created.'''
    def __init__(self, key):
        self.key = key
        KeyError.__init__(self, 'transform %s is not known' % key)

    def __str__(self):
        return self.args[0]


class InputError(ValueError):
    '''Invalid value for a user-facing option.'''
    def __init__(self, msg, keyword=None, value=None):
        self.keyword = keyword
        self.value = value
        if keyword is not None:
            msg = '%s (keyword %s = %s)' % (msg, keyword, value)
        ValueError.__init__(self, msg)
