#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Core Package
Модели задач, хранилище документов, репозитории и достижения
"""
