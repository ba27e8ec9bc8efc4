"""Order pipeline services"""
