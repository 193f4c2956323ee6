# KAPOW! 卡牌游戏规则引擎
