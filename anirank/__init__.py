"""anirank: 两两比较排名与 1-10 分校准"""
